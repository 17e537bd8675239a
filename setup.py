from setuptools import setup, find_packages

setup(
    name='cartforest',
    version='1.0',
    py_modules=['errors', 'target_stats', 'split_search', 'tree_builder', 'forest_trainer'],
    packages=find_packages(exclude=('tests', 'experiments')),
    install_requires=['numpy'],
    extras_require={
        'test': ['pytest'],
        'experiments': ['scikit-learn'],
    },
    python_requires='>=3.10',
    description='CART regression trees and a bagged random forest on sorted feature views',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
)
