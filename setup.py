from setuptools import setup

setup(
    name="prometheus_hetzner_sd",
    version="1.0.0",
    description="Prometheus service discovery for Hetzner Robot servers",
    url="https://github.com/promhippie/prometheus-hetzner-sd",
    author="",
    author_email="",
    license="Apache-2.0",
    packages=["prometheus_hetzner_sd"],
    python_requires=">=3.9",
    install_requires=[
        "aiofiles",
        "attrs",
        "httpx",
        "hypercorn",
        "jsonschema",
        "prometheus_client",
        "python-dotenv",
        "PyYAML",
        "quart",
        "toml",
        "validators",
    ],
    extras_require={
        "test": ["hypothesis", "pytest", "pytest-asyncio"],
    },
    entry_points={
        "console_scripts": [
            "prometheus-hetzner-sd=prometheus_hetzner_sd.__main__:main",
        ],
    },
    zip_safe=False,
)
