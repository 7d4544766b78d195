# dfir_fat12: a FAT12 image parser for digital forensics & incident response
# (c) Maxim Suhanov
#
# This module implements an interface to work with a 12-bit file allocation table (FAT).

import struct

from .Exceptions import IndexOutOfRangeException, CorruptChainException, TruncatedImageException

FAT12_FREE = 0x000
FAT12_RESERVED = 0x001
FAT12_BAD = 0xFF7 # Bad cluster.
FAT12_EOC = 0xFF8 # End of chain (0xFF8-0xFFF).

FIRST_DATA_CLUSTER = 2

# Cluster classes (see FAT.classify()).
CLUSTER_FREE = 'FREE'
CLUSTER_RESERVED = 'RESERVED'
CLUSTER_ALLOCATED = 'ALLOCATED'
CLUSTER_BAD = 'BAD'
CLUSTER_EOC = 'EOC'

class FAT(object):
	"""This class is used to work with a file allocation table (12-bit entries, two entries in three bytes)."""

	fat_buf = None
	"""Raw bytes of the table."""

	entry_count = None
	"""Number of entries (including two reserved ones)."""

	cluster_count = None
	"""Number of data clusters (None, if unknown)."""

	def __init__(self, fat_buf, cluster_count = None):
		self.fat_buf = bytes(fat_buf)

		# Each entry takes 1.5 bytes.
		self.entry_count = len(self.fat_buf) * 2 // 3
		if cluster_count is not None:
			self.entry_count = min(self.entry_count, cluster_count + FIRST_DATA_CLUSTER)

		self.cluster_count = cluster_count

	@classmethod
	def from_image(cls, image_buf, geometry):
		"""Load the first FAT described by a given Geometry object from the image (as raw bytes)."""

		fat_end = geometry.fat_offset + geometry.fat_size
		if len(image_buf) < fat_end:
			raise TruncatedImageException('FAT region ends at offset {}, image size is {}'.format(fat_end, len(image_buf)))

		return cls(image_buf[geometry.fat_offset : fat_end], geometry.cluster_count)

	def get(self, number):
		"""Get and return the FAT entry by its number."""

		if number < 0 or number >= self.entry_count:
			raise IndexOutOfRangeException('Out of bounds, FAT element: {} (entries: {})'.format(number, self.entry_count))

		fat_item_offset = number + number // 2
		next_item = struct.unpack('<H', self.fat_buf[fat_item_offset : fat_item_offset + 2])[0]
		if number % 2 == 0:
			return next_item & 0x0FFF
		else:
			return next_item >> 4

	@staticmethod
	def classify(value):
		"""Classify a given FAT entry value, return one of the CLUSTER_* constants."""

		if value == FAT12_FREE:
			return CLUSTER_FREE

		if value == FAT12_RESERVED:
			return CLUSTER_RESERVED

		if value == FAT12_BAD:
			return CLUSTER_BAD

		if value >= FAT12_EOC:
			return CLUSTER_EOC

		return CLUSTER_ALLOCATED

	def chain_limit(self):
		"""Return the maximum length of a valid chain."""

		if self.cluster_count is not None:
			return self.cluster_count

		return self.entry_count - FIRST_DATA_CLUSTER

	def follow_chain(self, first_cluster):
		"""Yield cluster numbers of the chain starting at a given cluster, stop at the end of chain.
		Each call starts a new traversal.
		"""

		if first_cluster < FIRST_DATA_CLUSTER:
			raise CorruptChainException('Invalid starting cluster: {}'.format(first_cluster))

		limit = self.chain_limit()
		visited = set()

		curr_cluster = first_cluster
		while True:
			if curr_cluster in visited:
				raise CorruptChainException('Loop in the chain starting at cluster {}, cluster {} is revisited'.format(first_cluster, curr_cluster))

			if len(visited) >= limit:
				raise CorruptChainException('Chain starting at cluster {} is longer than {} clusters'.format(first_cluster, limit))

			value = self.get(curr_cluster)
			value_class = self.classify(value)
			if value_class not in [ CLUSTER_ALLOCATED, CLUSTER_EOC ]:
				raise CorruptChainException('Invalid link in the chain starting at cluster {}: cluster {} is marked as {} ({})'.format(first_cluster, curr_cluster, value_class, hex(value)))

			visited.add(curr_cluster)
			yield curr_cluster

			if value_class == CLUSTER_EOC:
				return

			curr_cluster = value

	def chain(self, first_cluster):
		"""Get and return the cluster chain for the given first cluster (as a list of cluster numbers)."""

		return list(self.follow_chain(first_cluster))

	def is_allocated(self, cluster):
		"""Check if a given cluster is marked as allocated (bad clusters count as allocated)."""

		return self.get(cluster) != FAT12_FREE

	def __len__(self):
		return self.entry_count

	def __str__(self):
		return 'FAT'
