from setuptools import setup, find_packages

setup(
    name="sessioncap",
    version="0.1.0",
    description="Capture-session supervisor: periodic screenshots plus continuous audio, uploaded per session",
    author="",
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyaudio>=0.2.11",
        "numpy>=1.21.0",
        "mss>=9.0.0",
        "Pillow>=10.0.0",
        "rich>=12.5.0",
        "pydantic>=2.0.0",
        "pyyaml>=6.0.0",
        "pypubsub>=4.0.3",
        "aiohttp>=3.8.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "sessioncap=sessioncap.main:main",
        ],
    },
)
