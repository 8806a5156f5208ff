import os
from setuptools import setup, find_packages


def read(fname: str) -> str:
    with open(os.path.join(os.path.dirname(__file__), fname)) as f:
        return f.read()


def requirements(fname: str) -> list:
    return [line.strip() for line in read(fname).splitlines() if line.strip() and not line.startswith("#")]


setup(
    name="fix-datasource-azure",
    version="0.1.0",
    description="Read-only Azure data sources for infrastructure as code tooling",
    license="Apache 2.0",
    packages=find_packages(exclude=["test", "test.*"]),
    long_description=read("README.md"),
    long_description_content_type="text/markdown",
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.9",
    install_requires=requirements("requirements.txt"),
    extras_require={"test": requirements("requirements-test.txt")},
    classifiers=[
        # Current project status
        "Development Status :: 4 - Beta",
        # Audience
        "Intended Audience :: System Administrators",
        "Intended Audience :: Information Technology",
        # License information
        "License :: OSI Approved :: Apache Software License",
        # Supported python versions
        "Programming Language :: Python :: 3.9",
        # Supported OS's
        "Operating System :: POSIX :: Linux",
        "Operating System :: Unix",
        # Extra metadata
        "Environment :: Console",
        "Natural Language :: English",
        "Topic :: Utilities",
    ],
    keywords="cloud azure infrastructure",
)
