import setuptools

from cgmres import __version__


with open('README.md', 'r') as fh:
    long_description = fh.read()

with open('requirements.txt', 'r') as fh:
    requirements = fh.read().splitlines()

if __name__ == '__main__':
    setuptools.setup(
        name='cgmres',
        version=__version__,
        description="Multiple shooting continuation/GMRES nonlinear model "
                    "predictive control with control input saturation",
        long_description=long_description,
        long_description_content_type='text/markdown',
        packages=setuptools.find_packages(include=['cgmres', 'cgmres.*']),
        python_requires='>=3.8',
        install_requires=requirements,
        extras_require={'test': ['pytest']})
