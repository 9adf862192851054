from .gateway import EmbeddingGateway

__all__ = ["EmbeddingGateway"]
