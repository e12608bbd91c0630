from setuptools import find_namespace_packages, setup

setup(
    name="address-pager",
    version="0.1.0",
    description="Searchable, paginated terminal view over a remote address inventory",
    python_requires=">=3.11",
    py_modules=["browse", "pager", "records", "server", "settings"],
    packages=find_namespace_packages(include=["utils", "utils.*"]),
    install_requires=[
        "httpx>=0.27",
        "pydantic>=2.6",
        "pydantic-settings>=2.2",
        "tenacity>=8.2",
        "uvloop>=0.19",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "address-pager=browse:main",
        ],
    },
)
