# dfir_fat12: a FAT12 image parser for digital forensics & incident response
# (c) Maxim Suhanov
#
# This module implements the command line interface (see the "fat12_extract" script).

import sys
import logging
import codecs
import argparse

from . import __version__
from .Tree import FileSystemParser, FileNode, IterateTree
from .Emitter import Emitter
from .Exceptions import FileSystemException

logger = logging.getLogger('fat12_extract')

def FormatListingLine(Path, Node):
	"""Return a listing line for a node: kind, status, path and size (tab-separated)."""

	if Node.is_deleted:
		status = 'DELETED'
	else:
		status = 'NORMAL'

	if type(Node) is FileNode:
		return 'FILE\t{}\t{}\t{}'.format(status, Path, len(Node.data))

	return 'DIR\t{}\t{}\t-'.format(status, Path)

def BuildArgumentParser():
	parser = argparse.ArgumentParser(prog = 'fat12_extract', description = 'Reconstruct and extract the directory tree of a FAT12 image.')
	parser.add_argument('image', help = 'a raw FAT12 image file')
	parser.add_argument('output_directory', help = 'a directory to write extracted files to')
	parser.add_argument('--deleted', action = 'store_true', help = 'also recover deleted entries (when their data was not reused)')
	parser.add_argument('--best-effort', action = 'store_true', help = 'skip corrupt subtrees instead of stopping')
	parser.add_argument('--workers', type = int, default = None, help = 'process subdirectories of the root in this many threads')
	parser.add_argument('--encoding', default = 'ascii', help = 'a codepage for short names (default: ascii)')
	parser.add_argument('--list-only', action = 'store_true', help = 'print the listing, do not write files')
	parser.add_argument('-v', '--verbose', action = 'store_true', help = 'print debug messages')
	parser.add_argument('--version', action = 'version', version = '%(prog)s ' + __version__)

	return parser

def main(argv = None):
	"""Run the program, return the exit status."""

	args = BuildArgumentParser().parse_args(argv)

	if args.verbose:
		level = logging.DEBUG
	else:
		level = logging.INFO

	logging.basicConfig(level = level, format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s', stream = sys.stderr)

	try:
		codecs.lookup(args.encoding)
	except LookupError:
		logger.error('Unknown encoding: {}'.format(args.encoding))
		return 1

	logger.info('Image file: {}'.format(args.image))
	logger.info('Output directory: {}'.format(args.output_directory))

	try:
		with open(args.image, 'rb') as f:
			image_buf = f.read()
	except OSError as e:
		logger.error('Cannot read the image: {}'.format(e))
		return 1

	logger.info('Read file of size {}'.format(len(image_buf)))

	try:
		fs = FileSystemParser(image_buf, args.encoding, args.deleted, args.best_effort, args.workers)
		root = fs.build_tree()
	except FileSystemException as e:
		logger.error('Cannot parse the image: {} ({})'.format(e, type(e).__name__))
		return 1

	for path, node in IterateTree(root):
		print(FormatListingLine(path, node))

	for skipped_entry in fs.skipped:
		print('SKIPPED\t{}\t{}'.format(skipped_entry.path, skipped_entry.reason))

	if not args.list_only:
		try:
			written = Emitter().emit(root, args.output_directory)
		except OSError as e:
			logger.error('Cannot write to the output directory: {}'.format(e))
			return 1

		logger.info('Written {} items'.format(len(written)))

	return 0
