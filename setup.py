from setuptools import setup

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="pybasket",
    version="0.1.0",
    description="Basket option pricing with moment matching and Monte-Carlo under deterministic curves",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=["pybasket"],
    test_suite="tests",
    python_requires=">=3.8",
    install_requires=["numpy", "scipy"],
    extras_require={"test": ["pytest"]},
)
