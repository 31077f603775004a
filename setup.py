"""
Setup script for Trend Curator - signal review and trend curation service.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="trend-curator",
    version="0.1.0",
    description="Review imported signals and curate them into trends",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Trend Curator Team",
    packages=find_packages(include=["trend_curator", "trend_curator.*", "api", "api.*"]),
    python_requires=">=3.11",
    install_requires=[
        # Database driver
        "asyncpg>=0.29.0",

        # Processing pipeline hand-off (Redis is the Celery result backend)
        "celery>=5.3.0",
        "kombu>=5.3.0",
        "redis>=5.0.0",

        # HTTP client (review backend, summarizer)
        "httpx>=0.25.0",

        # REST API
        "fastapi>=0.104.0",
        "uvicorn[standard]>=0.24.0",

        # Data validation
        "pydantic>=2.5.0",

        # Monitoring and observability
        "prometheus-client>=0.19.0",

        # Utilities
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "black>=23.12.0",
            "mypy>=1.7.0",
            "ruff>=0.1.8",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    ],
    include_package_data=True,
    zip_safe=False,
)
