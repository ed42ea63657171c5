from setuptools import setup, find_packages

setup(
    name="ajax-bridge",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "httpx>=0.27",
        "pydantic>=2.0",
        "structlog",
        "starlette",
        "python-multipart",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "pytest-httpx",
        ],
    },
    description="Legacy ajax(options) callback/promise contract on top of an async fetch transport.",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
)
