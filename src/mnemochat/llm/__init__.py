from .completion import CompletionGateway, CompletionResult, to_langchain_messages

__all__ = ["CompletionGateway", "CompletionResult", "to_langchain_messages"]
