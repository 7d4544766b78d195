from setuptools import setup
from dfir_fat12 import __version__

setup(
	name = 'dfir_fat12',
	version = __version__,
	license = 'GPLv3',
	packages = [ 'dfir_fat12' ],
	provides = [ 'dfir_fat12' ],
	scripts = [ 'fat12_extract' ],
	description = 'A FAT12 image parser for digital forensics & incident response',
	author = 'Maxim Suhanov',
	author_email = 'no.spam.c@mail.ru',
	python_requires = '>=3.6',
	classifiers = [
		'License :: OSI Approved :: GNU General Public License v3 (GPLv3)',
		'Operating System :: OS Independent',
		'Programming Language :: Python :: 3',
		'Development Status :: 5 - Production/Stable'
	],
	extras_require = {
		'test': [ 'pytest' ]
	}
)
