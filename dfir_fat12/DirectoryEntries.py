# dfir_fat12: a FAT12 image parser for digital forensics & incident response
# (c) Maxim Suhanov
#
# This module implements an interface to work with directory entries (32-byte slots).

import struct
from datetime import date, time, datetime, timedelta
from collections import namedtuple

from .BootSector import DIRECTORY_ENTRY_SIZE
from .Exceptions import CorruptDirectoryException

# Values of the first byte of a slot:
ENTRY_END = 0x00 # This slot and all slots after it are free.
ENTRY_DELETED = 0xE5
ENTRY_KANJI = 0x05 # The first character is 0xE5.
ENTRY_DOT = 0x2E

# The first character of a deleted entry is lost, this one is used instead.
DELETED_PLACEHOLDER = b'_'

# File attributes:
ATTR_READ_ONLY = 0x01
ATTR_HIDDEN = 0x02
ATTR_SYSTEM = 0x04
ATTR_VOLUME_ID = 0x08
ATTR_DIRECTORY = 0x10
ATTR_ARCHIVE = 0x20

FILE_ATTR_LIST = {
	ATTR_READ_ONLY: 'READ_ONLY',
	ATTR_HIDDEN: 'HIDDEN',
	ATTR_SYSTEM: 'SYSTEM',
	ATTR_VOLUME_ID: 'VOLUME_ID',
	ATTR_DIRECTORY: 'DIRECTORY',
	ATTR_ARCHIVE: 'ARCHIVE'
}

NAME_LENGTH = 8
EXTENSION_LENGTH = 3

def ResolveFileAttributes(FileAttributes):
	"""Convert file attributes to a string."""

	str_list = []
	for file_attr in sorted(FILE_ATTR_LIST.keys()):
		if FileAttributes & file_attr > 0:
			str_list.append(FILE_ATTR_LIST[file_attr])

	return ' | '.join(str_list)

def DecodeFATDate(Value):
	"""Decode and return the date object (or None, if the date is invalid)."""

	day = Value & 0x1F
	if day == 0:
		return

	month = (Value >> 5) & 0x0F
	if month == 0 or month > 12:
		return

	year = ((Value >> 9) & 0x7F) + 1980

	try:
		return date(year, month, day)
	except ValueError:
		return

def DecodeFATTime(Value):
	"""Decode and return the time object (or None, if the time is invalid)."""

	second = Value & 0x1F
	if second > 29:
		return

	minute = (Value >> 5) & 0x3F
	if minute > 59:
		return

	hour = (Value >> 11) & 0x1F
	if hour > 23:
		return

	return time(hour, minute, second * 2)

def FormatName(Raw, Length, Encoding = 'ascii'):
	"""Format a raw name (or extension) field: copy up to the first null byte, convert to uppercase, pad with spaces.
	A string of exactly 'Length' characters is returned. Decoding errors are not raised.
	"""

	raw = bytes(Raw[ : Length])

	end = raw.find(b'\x00')
	if end != -1:
		raw = raw[ : end]

	return raw.upper().ljust(Length, b' ').decode(Encoding, errors = 'replace')

class DirectoryEntry(namedtuple('DirectoryEntry', [ 'name', 'extension', 'attributes', 'is_read_only', 'is_hidden', 'is_system', 'is_volume_label', 'is_directory', 'is_archive', 'first_cluster', 'size', 'ctime', 'atime', 'mtime', 'is_deleted', 'is_dot_entry' ])):
	"""A decoded short (8.3) directory entry. The name and the extension are fixed-width, space-padded strings."""

	__slots__ = ()

	@property
	def display_name(self):
		"""The name used in paths: "NAME.EXT", or "NAME" when the extension is blank."""

		base = self.name.rstrip(' ')
		extension = self.extension.rstrip(' ')
		if len(extension) > 0:
			return base + '.' + extension

		return base

def DecodeDirectoryEntry(Slot, Encoding = 'ascii'):
	"""Decode a 32-byte directory slot, return a DirectoryEntry object (or None, if this is the end-of-directory marker)."""

	if len(Slot) != DIRECTORY_ENTRY_SIZE:
		raise CorruptDirectoryException('Invalid directory slot size: {} bytes'.format(len(Slot)))

	first_byte = Slot[0]
	if first_byte == ENTRY_END:
		return

	is_deleted = first_byte == ENTRY_DELETED
	raw_name = bytes(Slot[ : NAME_LENGTH])
	if is_deleted:
		raw_name = DELETED_PLACEHOLDER + raw_name[1 : ]
	elif first_byte == ENTRY_KANJI:
		raw_name = b'\xE5' + raw_name[1 : ]

	name = FormatName(raw_name, NAME_LENGTH, Encoding)
	extension = FormatName(Slot[NAME_LENGTH : NAME_LENGTH + EXTENSION_LENGTH], EXTENSION_LENGTH, Encoding)

	attributes = Slot[11]

	# This is a count of 10 ms increments (0-199).
	ctime_fat_tenth = Slot[13]
	if ctime_fat_tenth > 199:
		ctime_fat_tenth = 0

	ctime_fat = DecodeFATTime(struct.unpack('<H', Slot[14 : 16])[0])
	cdate_fat = DecodeFATDate(struct.unpack('<H', Slot[16 : 18])[0])
	adate_fat = DecodeFATDate(struct.unpack('<H', Slot[18 : 20])[0])
	mtime_fat = DecodeFATTime(struct.unpack('<H', Slot[22 : 24])[0])
	mdate_fat = DecodeFATDate(struct.unpack('<H', Slot[24 : 26])[0])

	first_cluster = struct.unpack('<H', Slot[26 : 28])[0]
	size = struct.unpack('<L', Slot[28 : 32])[0]

	if cdate_fat is not None and ctime_fat is not None:
		ctime = datetime.combine(cdate_fat, ctime_fat) + timedelta(milliseconds = ctime_fat_tenth * 10)
	else:
		ctime = None

	if mdate_fat is not None and mtime_fat is not None:
		mtime = datetime.combine(mdate_fat, mtime_fat)
	else:
		mtime = None

	return DirectoryEntry(name, extension, attributes,
		attributes & ATTR_READ_ONLY > 0, attributes & ATTR_HIDDEN > 0, attributes & ATTR_SYSTEM > 0,
		attributes & ATTR_VOLUME_ID > 0, attributes & ATTR_DIRECTORY > 0, attributes & ATTR_ARCHIVE > 0,
		first_cluster, size, ctime, adate_fat, mtime, is_deleted, first_byte == ENTRY_DOT)

class DirectoryEntries(object):
	"""This class is used to work with directory entries stored in a region (the root directory or directory clusters)."""

	region_buf = None
	encoding = None

	def __init__(self, region_buf, encoding = 'ascii'):
		self.region_buf = region_buf
		self.encoding = encoding

	def slot_count(self):
		"""Return the number of complete slots in the region."""

		return len(self.region_buf) // DIRECTORY_ENTRY_SIZE

	def entries(self):
		"""Decode and yield directory entries as tuples: (slot_index, DirectoryEntry).
		Stop at the end-of-directory marker or when the region is exhausted.
		"""

		for slot_index in range(self.slot_count()):
			pos = slot_index * DIRECTORY_ENTRY_SIZE
			dir_entry = DecodeDirectoryEntry(self.region_buf[pos : pos + DIRECTORY_ENTRY_SIZE], self.encoding)
			if dir_entry is None:
				break

			yield (slot_index, dir_entry)

	def __str__(self):
		return 'DirectoryEntries'
