"""
Packaging for waypoint: a pure Python library, with no compiled extensions.
Dependency injection of class handlers is provided by rodi, deprecation warnings by
essentials.
"""

from setuptools import find_packages, setup


def readme():
    return (
        "Request matching and dispatch engine: path placeholders with constraints, "
        "route groups, before and after middlewares, reverse URL lookup."
    )


setup(
    name="waypoint-router",
    version="1.0.0",
    description="Request matching and dispatch engine",
    long_description=readme(),
    long_description_content_type="text/plain",
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    keywords="routing router dispatch middleware",
    license="MIT",
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires=">=3.8",
    install_requires=[
        "rodi>=2.0.6",
        "essentials>=1.1.4",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
