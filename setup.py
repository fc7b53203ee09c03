from setuptools import setup, find_packages

setup(
    name="stagix",
    version="0.1.0",
    description="Render git repositories into static HTML sites: log, commit diffs, file tree, refs and a repository index",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="0BSD",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "markdown>=3.8.2",
        "pygments>=2.19.2",
        "mcp>=1.0.0,<2",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "stagix=stagix_package.stagix:main",
            "stagix-mcp=stagix_package.mcp_server:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Software Development :: Version Control :: Git",
        "Topic :: Utilities",
    ],
)
