from setuptools import setup, find_packages

setup(
    name="voice2task",
    version="0.1.0",
    description="Voice-to-task pipeline: speech capture and rule-based task segmentation",
    author="",
    python_requires=">=3.9",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyaudio>=0.2.11",
        "numpy>=1.21.0",
        "rich>=12.5.0",
        "pydantic>=2.0.0",
        "pyyaml>=6.0.0",
        "pypubsub>=4.0.3",
        "aiohttp>=3.8.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "voice2task=voice2task.main:main",
        ],
    },
)
