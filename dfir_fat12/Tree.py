# dfir_fat12: a FAT12 image parser for digital forensics & incident response
# (c) Maxim Suhanov
#
# This module implements the directory tree reconstruction.

import logging
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor

from .BootSector import ReadGeometry
from .FAT import FAT, FIRST_DATA_CLUSTER
from .Clusters import ClusterReader
from .DirectoryEntries import DirectoryEntries
from .Exceptions import FileSystemException, CorruptDirectoryException, CorruptEntryException

logger = logging.getLogger(__name__)

PATH_SEPARATOR = '/'

FileNode = namedtuple('FileNode', [ 'name', 'data', 'entry', 'is_deleted' ])
DirectoryNode = namedtuple('DirectoryNode', [ 'name', 'children', 'entry', 'is_deleted' ])

SkippedEntry = namedtuple('SkippedEntry', [ 'path', 'reason' ])

def ExpandPath(ParentPath, Name):
	"""Return the path of a node given its parent path (the root path is empty)."""

	return ParentPath + PATH_SEPARATOR + Name

def IterateTree(Node, ParentPath = ''):
	"""Yield tuples (path, node) for all descendants of a given directory node, in pre-order (slot order)."""

	stack = [ (ParentPath, Node.children, 0) ]
	while len(stack) > 0:
		parent_path, children, pos = stack.pop()
		if pos >= len(children):
			continue

		stack.append((parent_path, children, pos + 1))

		child = children[pos]
		path = ExpandPath(parent_path, child.name)

		yield (path, child)

		if type(child) is DirectoryNode:
			stack.append((path, child.children, 0))

class DirectoryFrame(object):
	"""A directory being built: its slots are consumed one by one, children are collected by slot index."""

	def __init__(self, name, path, entry, is_deleted, active_clusters, region_buf, encoding, slot_index = None):
		self.name = name
		self.path = path
		self.entry = entry
		self.is_deleted = is_deleted

		# Clusters of this directory and all of its ancestors.
		self.active_clusters = active_clusters

		self.slot_index = slot_index
		self.slots = DirectoryEntries(region_buf, encoding).entries()
		self.children = []

	def add_child(self, slot_index, node):
		self.children.append((slot_index, node))

	def node(self):
		children = tuple(node for __, node in sorted(self.children, key = lambda item: item[0]))
		return DirectoryNode(self.name, children, self.entry, self.is_deleted)

class FileSystemParser(object):
	"""This class is used to reconstruct the directory tree of a FAT12 image."""

	image_buf = None
	"""Raw bytes of the image (read-only)."""

	geometry = None
	"""A Geometry object for this image."""

	fat = None
	"""A FAT object for this image."""

	reader = None
	"""A ClusterReader object for this image."""

	root_buf = None
	"""The root directory region."""

	encoding = None
	"""A codepage for short (8.3) names."""

	recover_deleted = None
	"""If True, deleted entries are recovered (when their data was not reused)."""

	best_effort = None
	"""If True, a corrupt subtree is skipped (and reported) instead of aborting the walk."""

	max_workers = None
	"""If greater than 1, subdirectories of the root are processed concurrently."""

	skipped = None
	"""A list of SkippedEntry objects for the last walk."""

	def __init__(self, image_buf, encoding = 'ascii', recover_deleted = False, best_effort = False, max_workers = None):
		self.image_buf = image_buf
		self.encoding = encoding
		self.recover_deleted = recover_deleted
		self.best_effort = best_effort
		self.max_workers = max_workers

		# All checks against the boot sector and the system area are done here, before the walk.
		self.geometry = ReadGeometry(self.image_buf)
		self.fat = FAT.from_image(self.image_buf, self.geometry)
		self.reader = ClusterReader(self.image_buf, self.geometry, self.fat)
		self.root_buf = self.reader.read_root_directory()

		self.skipped = []

	def report_skipped(self, skipped, path, exception):
		"""Record (in a given list) and log an entry that was not included in the tree."""

		logger.warning('Skipping {}: {}'.format(path, exception))
		skipped.append(SkippedEntry(path, str(exception)))

	def recover_file_data(self, dir_entry):
		"""Read the data of a deleted file from consecutive free clusters."""

		if dir_entry.size == 0:
			return b''

		cluster_size = self.geometry.bytes_per_cluster
		count = (dir_entry.size + cluster_size - 1) // cluster_size

		self.check_free_run(dir_entry.first_cluster, count)
		return self.reader.read_contiguous(dir_entry.first_cluster, count)[ : dir_entry.size]

	def recover_directory_region(self, dir_entry):
		"""Read the first cluster of a deleted directory, return a tuple: (clusters, region_buf)."""

		self.check_free_run(dir_entry.first_cluster, 1)

		region_buf = self.reader.read_contiguous(dir_entry.first_cluster, 1)
		if region_buf[0] != ord('.'):
			raise CorruptDirectoryException('Cluster {} does not start with a dot entry'.format(dir_entry.first_cluster))

		return ([ dir_entry.first_cluster ], region_buf)

	def check_free_run(self, first_cluster, count):
		if first_cluster < FIRST_DATA_CLUSTER:
			raise CorruptEntryException('Invalid first cluster: {}'.format(first_cluster))

		for cluster in range(first_cluster, first_cluster + count):
			if self.fat.is_allocated(cluster):
				raise CorruptEntryException('Cluster {} was reallocated, the data is lost'.format(cluster))

	def open_entry(self, frame, slot_index, dir_entry, skipped):
		"""Build a node for a directory entry.
		A FileNode or a DirectoryFrame (to be filled) is returned, None is returned for skipped entries (these are added to the 'skipped' list).
		"""

		if dir_entry.is_dot_entry or dir_entry.is_volume_label:
			return

		if dir_entry.is_deleted and not self.recover_deleted:
			return

		is_deleted = frame.is_deleted or dir_entry.is_deleted
		path = ExpandPath(frame.path, dir_entry.display_name)

		try:
			if not dir_entry.is_directory:
				if is_deleted:
					data = self.recover_file_data(dir_entry)
				else:
					data = self.reader.read_file(dir_entry.first_cluster, dir_entry.size)

				return FileNode(dir_entry.display_name, data, dir_entry, is_deleted)

			if dir_entry.first_cluster in frame.active_clusters:
				raise CorruptDirectoryException('Directory {} refers to an ancestor (cluster {})'.format(path, dir_entry.first_cluster))

			if is_deleted:
				clusters, region_buf = self.recover_directory_region(dir_entry)
			else:
				region_buf = self.reader.read_directory(dir_entry.first_cluster)
				clusters = self.fat.chain(dir_entry.first_cluster)

			overlap = frame.active_clusters.intersection(clusters)
			if len(overlap) > 0:
				raise CorruptDirectoryException('Directory {} overlaps an ancestor (clusters: {})'.format(path, sorted(overlap)))

		except FileSystemException as e:
			if self.best_effort or is_deleted:
				self.report_skipped(skipped, path, e)
				return

			# Add the path, reader messages only name clusters and offsets.
			raise type(e)('{}: {}'.format(path, e._value)) from e

		logger.debug('Reading directory {} (cluster {})'.format(path, dir_entry.first_cluster))
		return DirectoryFrame(dir_entry.display_name, path, dir_entry, is_deleted, frame.active_clusters.union(clusters), region_buf, self.encoding, slot_index)

	def fill(self, top_frame, skipped):
		"""Fill a given frame and all frames below it, return the resulting DirectoryNode.
		Skipped entries are appended to the 'skipped' list (in slot order). An explicit stack is used instead of recursion.
		"""

		stack = [ top_frame ]
		while len(stack) > 0:
			frame = stack[-1]

			item = next(frame.slots, None)
			if item is None:
				stack.pop()
				if len(stack) == 0:
					return frame.node()

				stack[-1].add_child(frame.slot_index, frame.node())
				continue

			slot_index, dir_entry = item
			child = self.open_entry(frame, slot_index, dir_entry, skipped)
			if child is None:
				continue

			if type(child) is DirectoryFrame:
				stack.append(child)
			else:
				frame.add_child(slot_index, child)

	def fill_concurrently(self, top_frame):
		"""Fill a given frame, process its subdirectories in worker threads.
		Each slot gets its own list of skipped entries, the lists are merged in slot order.
		"""

		skipped_by_slot = []

		with ThreadPoolExecutor(max_workers = self.max_workers) as executor:
			futures = []
			for slot_index, dir_entry in top_frame.slots:
				slot_skipped = []
				skipped_by_slot.append(slot_skipped)

				child = self.open_entry(top_frame, slot_index, dir_entry, slot_skipped)
				if child is None:
					continue

				if type(child) is DirectoryFrame:
					futures.append((slot_index, executor.submit(self.fill, child, slot_skipped)))
				else:
					top_frame.add_child(slot_index, child)

			for slot_index, future in futures:
				top_frame.add_child(slot_index, future.result())

		for slot_skipped in skipped_by_slot:
			self.skipped.extend(slot_skipped)

		return top_frame.node()

	def build_tree(self):
		"""Walk over the file system, return the root DirectoryNode (its name is empty)."""

		self.skipped = []

		root_frame = DirectoryFrame('', '', None, False, frozenset(), self.root_buf, self.encoding)
		if self.max_workers is not None and self.max_workers > 1:
			return self.fill_concurrently(root_frame)

		return self.fill(root_frame, self.skipped)

	def __str__(self):
		return 'FileSystemParser (FAT12)'
