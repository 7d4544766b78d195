# dfir_fat12: a FAT12 image parser for digital forensics & incident response
# (c) Maxim Suhanov
#
# This module implements an interface to read data described by cluster chains.

from .FAT import FIRST_DATA_CLUSTER
from .Exceptions import CorruptEntryException, TruncatedImageException

class ClusterReader(object):
	"""This class is used to read clusters (and cluster chains) from an image."""

	image_buf = None
	"""Raw bytes of the image (read-only)."""

	geometry = None
	"""A Geometry object for this image."""

	fat = None
	"""A FAT object for this image."""

	def __init__(self, image_buf, geometry, fat):
		self.image_buf = image_buf
		self.geometry = geometry
		self.fat = fat

	def cluster_offset(self, cluster):
		"""Calculate and return the offset of a given data cluster (in bytes)."""

		return self.geometry.data_area_offset + (cluster - FIRST_DATA_CLUSTER) * self.geometry.bytes_per_cluster

	def read_cluster(self, cluster):
		"""Read and return one data cluster (as raw bytes)."""

		cluster_size = self.geometry.bytes_per_cluster
		offset = self.cluster_offset(cluster)
		if offset + cluster_size > len(self.image_buf):
			raise TruncatedImageException('Cluster {} (offset {}, {} bytes) is beyond the end of the image ({} bytes)'.format(cluster, offset, cluster_size, len(self.image_buf)))

		return bytes(self.image_buf[offset : offset + cluster_size])

	def read_chain(self, first_cluster):
		"""Read clusters in a chain described by its first cluster, return them (as raw bytes)."""

		bufs = []
		for cluster in self.fat.follow_chain(first_cluster):
			bufs.append(self.read_cluster(cluster))

		return b''.join(bufs)

	def read_file(self, first_cluster, file_size):
		"""Read and return the data of a file (truncated to its size)."""

		if first_cluster == 0:
			if file_size == 0: # This file is empty.
				return b''

			raise CorruptEntryException('No first cluster for a file of {} bytes'.format(file_size))

		buf = self.read_chain(first_cluster)
		if len(buf) < file_size:
			raise CorruptEntryException('Chain starting at cluster {} holds {} bytes, file size is {} bytes'.format(first_cluster, len(buf), file_size))

		# The last cluster is usually not filled completely.
		return buf[ : file_size]

	def read_directory(self, first_cluster):
		"""Read and return the clusters of a subdirectory (no truncation)."""

		if first_cluster == 0:
			raise CorruptEntryException('No first cluster for a subdirectory')

		return self.read_chain(first_cluster)

	def read_contiguous(self, first_cluster, count):
		"""Read and return a given number of consecutive clusters (no FAT lookups are made)."""

		if first_cluster < FIRST_DATA_CLUSTER:
			raise CorruptEntryException('Invalid first cluster: {}'.format(first_cluster))

		bufs = []
		for cluster in range(first_cluster, first_cluster + count):
			bufs.append(self.read_cluster(cluster))

		return b''.join(bufs)

	def read_root_directory(self):
		"""Read and return the root directory region (a fixed array of slots)."""

		root_offset = self.geometry.root_dir_offset
		root_size = self.geometry.root_dir_size
		if root_offset + root_size > len(self.image_buf):
			raise TruncatedImageException('Root directory (offset {}, {} bytes) is beyond the end of the image ({} bytes)'.format(root_offset, root_size, len(self.image_buf)))

		return bytes(self.image_buf[root_offset : root_offset + root_size])

	def __str__(self):
		return 'ClusterReader'
