from setuptools import find_packages, setup

with open("README.rst") as f:
    long_description = f.read()

setup(
    name="idfgen",
    version="0.1.0",
    description="Convert iMOD GEN-files to IDF-files and back",
    long_description=long_description,
    license="MIT",
    packages=find_packages(include=["idfgen", "idfgen.*"]),
    package_dir={"idfgen": "idfgen"},
    test_suite="idfgen/tests",
    python_requires=">=3.10",
    install_requires=[
        "geopandas",
        "loguru",
        "numba",
        "numpy",
        "pandas<3",
        "scipy",
        "shapely>=2",
        "xarray>=0.11",
    ],
    extras_require={
        "dev": [
            "black",
            "pytest",
            "pytest-cov",
        ],
    },
    entry_points={"console_scripts": ["idfgen = idfgen.cli:main"]},
    classifiers=[
        # https://pypi.python.org/pypi?%3Aaction=list_classifiers
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Hydrology",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: Implementation :: CPython",
    ],
    keywords="imod gen idf rasterize groundwater modeling",
)
