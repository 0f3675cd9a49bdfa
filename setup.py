# setup.py
from setuptools import setup, find_packages

setup(
    name="pitchdeck-ai",
    version="1.0.0",
    description="Business analysis decks and strategic questions from local LLM output",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyyaml>=6.0",
        "aiohttp>=3.9.0",
        "python-dotenv>=1.0.0",
        "python-pptx>=0.6.23",
        "pydantic>=2.6",
    ],
    extras_require={
        "web": [
            "fastapi>=0.109.0",
            "uvicorn[standard]>=0.27.0",
        ],
        "test": [
            "pytest>=7.0",
            "fastapi>=0.109.0",
            "httpx>=0.25.0",
        ],
    },
    entry_points={
        'console_scripts': [
            'pitchdeck=pitchdeck.cli:main',
        ],
    },
    python_requires='>=3.9',
)
