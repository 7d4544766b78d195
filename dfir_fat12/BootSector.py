# dfir_fat12: a FAT12 image parser for digital forensics & incident response
# (c) Maxim Suhanov
#
# This module implements an interface to work with the boot sector and the BIOS parameter block (BPB).

import struct
from collections import namedtuple

from .Exceptions import CorruptImageException, InvalidGeometryException

BOOT_SECTOR_SIZE = 512
DIRECTORY_ENTRY_SIZE = 32

# Only 512-byte sectors are supported.
SUPPORTED_BYTES_PER_SECTOR = 512

class Geometry(namedtuple('Geometry', [ 'bytes_per_sector', 'sectors_per_cluster', 'fat_count', 'root_entry_count', 'total_sectors', 'sectors_per_fat', 'reserved_sectors' ])):
	"""Disk geometry as described by the BIOS parameter block. Derived values are exposed as properties."""

	__slots__ = ()

	@property
	def root_dir_sector(self):
		return self.reserved_sectors + self.fat_count * self.sectors_per_fat

	@property
	def root_dir_sector_count(self):
		return (self.root_entry_count * DIRECTORY_ENTRY_SIZE + self.bytes_per_sector - 1) // self.bytes_per_sector

	@property
	def first_data_sector(self):
		return self.root_dir_sector + self.root_dir_sector_count

	@property
	def bytes_per_cluster(self):
		return self.sectors_per_cluster * self.bytes_per_sector

	@property
	def fat_offset(self):
		"""Offset of the first FAT (in bytes)."""

		return self.reserved_sectors * self.bytes_per_sector

	@property
	def fat_size(self):
		"""Size of one FAT (in bytes)."""

		return self.sectors_per_fat * self.bytes_per_sector

	@property
	def root_dir_offset(self):
		return self.root_dir_sector * self.bytes_per_sector

	@property
	def root_dir_size(self):
		return self.root_entry_count * DIRECTORY_ENTRY_SIZE

	@property
	def data_area_offset(self):
		return self.first_data_sector * self.bytes_per_sector

	@property
	def cluster_count(self):
		"""Number of data clusters (the first one is cluster 2)."""

		if self.total_sectors <= self.first_data_sector:
			return 0

		return (self.total_sectors - self.first_data_sector) // self.sectors_per_cluster

class BootSector(object):
	"""This class is used to work with a FAT12 boot sector (BS) containing a BIOS parameter block (BPB)."""

	bs_buf = None
	"""Data of a boot sector."""

	def __init__(self, bs_buf):
		if len(bs_buf) < BOOT_SECTOR_SIZE:
			raise CorruptImageException('Image is too short for a boot sector: {} bytes'.format(len(bs_buf)))

		self.bs_buf = bs_buf[ : BOOT_SECTOR_SIZE]

		if self.get_signature() != b'\x55\xaa':
			raise CorruptImageException('Invalid boot sector signature: {}'.format(self.get_signature().hex()))

	def get_bs_oemname(self):
		"""Get and return the OEM name (as raw bytes)."""

		return self.bs_buf[3 : 11]

	def get_bpb_bytspersec(self):
		"""Get and return the bytes per sector value."""

		bps = struct.unpack('<H', self.bs_buf[11 : 13])[0]
		if bps != SUPPORTED_BYTES_PER_SECTOR:
			raise InvalidGeometryException('Invalid number of bytes per sector: {}'.format(bps))

		return bps

	def get_bpb_secperclus(self):
		"""Get and return the sectors per cluster value."""

		spc = struct.unpack('<B', self.bs_buf[13 : 14])[0]
		if spc == 0:
			raise InvalidGeometryException('Invalid number of sectors per cluster (zero)')

		return spc

	def get_bpb_rsvdseccnt(self):
		"""Get and return the reserved sectors count."""

		return struct.unpack('<H', self.bs_buf[14 : 16])[0]

	def get_bpb_numfats(self):
		"""Get and return the number of FATs."""

		fats = struct.unpack('<B', self.bs_buf[16 : 17])[0]
		if fats == 0:
			raise InvalidGeometryException('Invalid number of FATs (zero)')

		return fats

	def get_bpb_rootentcnt(self):
		"""Get and return the number of entries in the root directory."""

		return struct.unpack('<H', self.bs_buf[17 : 19])[0]

	def get_bpb_totsec16(self):
		"""Get and return the 16-bit number of sectors on the volume."""

		return struct.unpack('<H', self.bs_buf[19 : 21])[0]

	def get_bpb_media(self):
		"""Get and return the media type (as an integer)."""

		return struct.unpack('<B', self.bs_buf[21 : 22])[0]

	def get_bpb_fatsz16(self):
		"""Get and return the number of sectors in one FAT."""

		cnt = struct.unpack('<H', self.bs_buf[22 : 24])[0]
		if cnt == 0:
			raise InvalidGeometryException('Invalid number of FAT sectors (zero)')

		return cnt

	def get_bpb_totsec32(self):
		"""Get and return the 32-bit number of sectors on the volume."""

		return struct.unpack('<L', self.bs_buf[32 : 36])[0]

	def get_total_sectors(self):
		"""Get and return the number of sectors on the volume (the 32-bit field is used when the 16-bit one is zero)."""

		tot = self.get_bpb_totsec16()
		if tot == 0:
			tot = self.get_bpb_totsec32()

		if tot == 0:
			raise InvalidGeometryException('Invalid number of total sectors (zero)')

		return tot

	def get_bs_bootsig(self):
		"""Get and return the extended boot signature."""

		return struct.unpack('<B', self.bs_buf[38 : 39])[0]

	def get_bs_extfields(self):
		"""Get and return the extended fields (if set).
		A tuple is returned: (volume_id, volume_label, fs_type).
		If the extended fields are not present, return (None, None, None).
		"""

		if self.get_bs_bootsig() != 0x29:
			return (None, None, None)

		volume_id = struct.unpack('<L', self.bs_buf[39 : 43])[0]
		volume_label = self.bs_buf[43 : 54]
		fs_type = self.bs_buf[54 : 62]

		return (volume_id, volume_label, fs_type)

	def get_signature(self):
		"""Get and return the boot signature (as two raw bytes)."""

		return self.bs_buf[510 : 512]

	def get_geometry(self):
		"""Validate the BPB fields and return them as a Geometry object."""

		geometry = Geometry(self.get_bpb_bytspersec(), self.get_bpb_secperclus(), self.get_bpb_numfats(), self.get_bpb_rootentcnt(),
			self.get_total_sectors(), self.get_bpb_fatsz16(), self.get_bpb_rsvdseccnt())

		if geometry.first_data_sector > geometry.total_sectors:
			raise InvalidGeometryException('System area ({} sectors) exceeds the volume ({} sectors)'.format(geometry.first_data_sector, geometry.total_sectors))

		return geometry

	def __str__(self):
		return 'BootSector'

def ReadGeometry(ImageBuf):
	"""Parse the boot sector of a given image (as raw bytes), return a Geometry object."""

	return BootSector(ImageBuf).get_geometry()
