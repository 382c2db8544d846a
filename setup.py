# setup.py
from setuptools import setup, find_packages

setup(
    name="supplychain",
    version="0.1.0",
    packages=find_packages(include=["supplychain", "supplychain.*"]),
    python_requires=">=3.9",
    install_requires=[
        "msgpack",         # entity codec and payload wire format
        "cryptography",    # secp256k1 keys
        "plyvel",          # LevelDB state
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "supplychain-genesis=supplychain.genesis_tool:main",
        ],
    },
)
