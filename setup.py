from setuptools import setup, find_packages

# Core requirements - always installed
REQUIRED = [
    "pydantic>=2.0.0,<3.0.0",
    "numpy>=1.26.0",

    # Langchain
    "langchain-core>=0.3.19",
    "langchain-openai>=0.3.19",

    # LLMs
    "openai>=1.0.0",
]

# Optional dependencies
EXTRAS = {
    # Durable store backend
    "sqlite_vec": ["sqlite-vec>=0.1.6"],

    # Test tooling
    "test": [
        "pytest>=8.0.0",
        "pytest-asyncio>=0.23.0",
    ],

    # All dependencies
    "all": [
        "sqlite-vec>=0.1.6",
    ],
}

setup(
    name="mnemochat",
    version="0.1.0",
    description="Semantic conversation memory and context assembly for LLM chat",
    author="kurcontko",
    author_email="mikeqrc@gmail.com",
    package_dir={"": "src"},
    packages=find_packages("src", exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=REQUIRED,
    extras_require=EXTRAS,
    entry_points={
        "console_scripts": [
            "mnemochat=mnemochat.cli:main"
        ]
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Operating System :: OS Independent",
    ],
    long_description_content_type="text/markdown",
    long_description=open("README.md").read(),
    license="MIT",
    keywords="ai chat memory langchain llm embeddings sqlite-vec",
)
