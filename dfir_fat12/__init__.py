# dfir_fat12: a FAT12 image parser for digital forensics & incident response
# (c) Maxim Suhanov

__version__ = '1.0.0'
__all__ = [ 'Exceptions', 'BootSector', 'FAT', 'DirectoryEntries', 'Clusters', 'Tree', 'Emitter', 'CommandLine' ]
