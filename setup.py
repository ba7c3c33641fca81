"""Setup configuration for the Shhh chat client."""

from setuptools import setup, find_packages

setup(
    name="shhh-chat-client",
    version="0.1.0",
    description="Realtime chat room client for the Shhh chat backend",
    author="Shhh Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "httpx>=0.24.0",
        "textual>=0.47.0",
        "websockets>=12.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "chat-client=shhh_client.main:main",
        ],
    },
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
