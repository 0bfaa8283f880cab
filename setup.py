from setuptools import setup
from pathlib import Path

this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

setup(name='otoolkit',
      version='1.0.0',
      description='Lazy, read-only Mach-O and universal binary decoder with an otool-like CLI.',
      long_description=long_description,
      long_description_content_type='text/markdown',
      python_requires='>=3.8',
      install_requires=['Pygments'],
      extras_require={
            'test': ['pytest']
      },
      packages=['lib0tk', 'otoolkit_macho', 'otoolkit'],
      package_dir={
            'lib0tk': 'src/lib0tk',
            'otoolkit_macho': 'src/otoolkit_macho',
            'otoolkit': 'src/otoolkit'
      },
      classifiers=[
            'Programming Language :: Python :: 3',
            'License :: OSI Approved :: MIT License',
            'Operating System :: OS Independent'
      ],
      scripts=['bin/otoolkit']
      )
