from setuptools import setup, find_packages

setup(
    name="brewpress",
    version="0.1.0",
    description="AI enrichment pipeline for pending WordPress news posts",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "aiohttp>=3.8.0",
        "async-timeout>=4.0.0",
        "backoff>=2.0.0",
        "beautifulsoup4>=4.10.0",
        "openai>=1.0.0",
        "python-dotenv>=1.0.0",
        "pyyaml>=6.0",
        "requests>=2.25.0",
        "tqdm>=4.62.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "brewpress=brewpress.cli:main",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
