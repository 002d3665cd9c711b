from setuptools import setup, find_packages

setup(
    name="page-builder-gateway",
    version="1.0.0",
    packages=find_packages(include=["apigateway", "apigateway.*"]),
    python_requires=">=3.11",
    install_requires=[
        "httpx>=0.27",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "respx>=0.21",
        ],
    },
)
