from setuptools import setup, find_namespace_packages

setup(
    name="xsmb_ai",
    version="1.0.0",
    description="XSMB statistics - frequency, cold cycles, pairs and weighted prediction scoring",
    packages=find_namespace_packages(include=["xsmb_ai", "xsmb_ai.*"]),
    py_modules=["main"],
    install_requires=[
        'numpy>=1.24.0',
        'pandas>=2.0.0',
        'scipy>=1.11.0',
        'sqlalchemy>=2.0.0',
        'requests>=2.31.0',
        'python-dateutil>=2.8.2',
        'fastapi>=0.100.0',
        'uvicorn>=0.23.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
            'httpx>=0.24.0',
        ],
    },
)
