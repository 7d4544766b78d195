# dfir_fat12: a FAT12 image parser for digital forensics & incident response
# (c) Maxim Suhanov
#
# This module implements an interface to write a reconstructed tree to a host directory.

import os
import logging

from .Tree import FileNode, DirectoryNode

logger = logging.getLogger(__name__)

# Characters that cannot be used in host file names (on common systems).
INVALID_CHARACTERS = '<>:"|?*\\/\x00'

DELETED_PREFIX = 'DELETED_'

def SanitizeName(Name):
	"""Convert a node name into a safe host file name."""

	name = ''.join('_' if (char in INVALID_CHARACTERS or ord(char) < 0x20) else char for char in Name)
	if name in [ '', '.', '..' ]:
		return '_'

	return name

class Emitter(object):
	"""This class is used to write a tree of nodes (files and directories) to a host directory."""

	overwrite = None
	"""If True, existing host files are replaced (otherwise, a new name is chosen)."""

	def __init__(self, overwrite = False):
		self.overwrite = overwrite

	def host_name(self, node, used_names, host_dir):
		"""Choose a host name for a node, resolve collisions by appending a suffix (~1, ~2, etc.)."""

		name = SanitizeName(node.name)
		if node.is_deleted:
			name = DELETED_PREFIX + name

		candidate = name
		counter = 0
		while candidate.upper() in used_names or ((not self.overwrite) and os.path.lexists(os.path.join(host_dir, candidate))):
			counter += 1
			candidate = '{}~{}'.format(name, counter)

		used_names.add(candidate.upper())
		return candidate

	def emit(self, node, host_base_path):
		"""Write a directory node (its children, not the node itself) into a given host directory.
		A list of written host paths is returned.
		"""

		if type(node) is not DirectoryNode:
			raise ValueError('A directory node is expected, got: {}'.format(type(node).__name__))

		os.makedirs(host_base_path, exist_ok = True)

		written = []
		stack = [ (node, host_base_path) ]
		while len(stack) > 0:
			dir_node, host_dir = stack.pop()

			used_names = set()
			subdirs = []
			for child in dir_node.children:
				host_path = os.path.join(host_dir, self.host_name(child, used_names, host_dir))

				if type(child) is FileNode:
					with open(host_path, 'wb') as f:
						f.write(child.data)
				else:
					os.makedirs(host_path, exist_ok = True)
					subdirs.append((child, host_path))

				logger.debug('Written: {}'.format(host_path))
				written.append(host_path)

			stack.extend(reversed(subdirs))

		return written

	def __str__(self):
		return 'Emitter'
