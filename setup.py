import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="skysolve",
    version="0.1.0",
    author="skysolve developers",
    description="Batch driver for solving the sky position of astronomical images",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT",
    keywords="astronomy astrometry WCS plate solving",
    packages=setuptools.find_packages(include=["skysolve", "skysolve.*"]),
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires='>=3.11',
    install_requires=[
        "astropy",
        "numpy",
        "pydantic>=2",
        "setuptools",
    ],
    extras_require={
        "dev": [
            "black",
            "coveralls",
            "isort",
            "pylint",
        ],
        "docs": [
            "sphinx",
            "sphinx_mdinclude",
            "sphinx_rtd_theme",
        ],
    },
    entry_points={
        "console_scripts": [
            "skysolve = skysolve.cli:main",
        ],
    },
)
