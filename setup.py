from setuptools import setup, find_packages


with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="flowstream",
    version="0.1.0",
    description="Live client for following a remote max-flow computation.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires=">=3.10",
    install_requires=["aiohttp>=3.9", "PyYAML", "networkx"],
    extras_require={"test": ["pytest", "pytest-asyncio"]},
    entry_points={"console_scripts": ["flowstream=flowstream.cli:main"]},
)
