from setuptools import find_packages, setup

setup(
    name="symgrow",
    version="0.1.0",
    description="Grow crystal structures across symmetry into complete fragments",
    package_dir={"": "src"},
    packages=find_packages("src"),
    package_data={"symgrow.tests": ["test_files/*"]},
    python_requires=">=3.8",
    install_requires=["numpy", "scipy"],
    extras_require={"test": ["pytest"]},
)
