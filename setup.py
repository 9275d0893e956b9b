from setuptools import setup, find_packages

setup(
    name='epiode',
    version='1.0.0',
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={'epiode.models': ['*/params.yml']},
    url='',
    license='',
    author='',
    author_email='',
    python_requires='>=3.8',
    install_requires=['numpy>=1.20',
                      'scipy>=1.6',
                      'pandas>=1.2',
                      'PyYAML>=5.4',
                      'pydantic>=2.0',
                      'click>=8.0', ],
    extras_require={'test': ['pytest>=6.0', ]},
    entry_points={'console_scripts': ['epiode=epiode.cli:cli']},
    description='Compartmental epidemic models solved as systems of ODEs'
)
