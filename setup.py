from setuptools import setup, find_packages

# Setting up
setup(
        name="PVstring",
        version='0.1.0',
        description='PV string and array circuit model',
        long_description='Single-diode model of PV cells and modules combined into series strings and parallel arrays, with topology reduction',
        packages=find_packages(exclude=['tests', 'tests.*']),
        python_requires='>=3.8',
        install_requires=['numpy>=1.13.3',
                          'matplotlib>=2.1.0',
                          'parse>=1.19.0',
                          'scipy>=1.0.0',
                          'pandas>=1.0',
                          'tqdm>=4.0'],
        extras_require={'test': ['pytest>=6.0',
                                 'pvlib>=0.9.0']},
)
