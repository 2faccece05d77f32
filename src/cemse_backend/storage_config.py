"""
Buckets, size limits and file type whitelists for profile pictures, case
evidence and library documents.
"""
import os
from typing import Dict, Set

PROFILE_PICTURE_BUCKET = os.environ.get('PROFILE_PICTURE_BUCKET', 'user-profile-pictures')
CASE_EVIDENCE_BUCKET = os.environ.get('CASE_EVIDENCE_BUCKET', 'case-evidence')
LIBRARY_BUCKET = os.environ.get('LIBRARY_BUCKET', 'library')

MAX_PROFILE_PICTURE_SIZE = int(os.environ.get('MAX_PROFILE_PICTURE_SIZE', 5 * 1024 * 1024))
MAX_EVIDENCE_SIZE = int(os.environ.get('MAX_EVIDENCE_SIZE', 10 * 1024 * 1024))
MAX_LIBRARY_FILE_SIZE = int(os.environ.get('MAX_LIBRARY_FILE_SIZE', 50 * 1024 * 1024))

PROFILE_PICTURE_MIME_TYPES: Set[str] = {
    'image/jpeg',
    'image/jpg',
    'image/png',
    'image/gif',
    'image/webp',
}

EVIDENCE_MIME_TYPES: Set[str] = PROFILE_PICTURE_MIME_TYPES | {
    'application/pdf',
    'audio/mpeg',
    'audio/mp3',
    'audio/wav',
    'audio/x-m4a',
    'video/mp4',
    'video/quicktime',
    'video/x-msvideo',
}

# Leading bytes of executable content, rejected for every upload kind
DANGEROUS_SIGNATURES: Dict[bytes, str] = {
    b'MZ': 'Windows executable',
    b'\x7fELF': 'Linux executable',
    b'\xfe\xed\xfa\xce': 'Mach-O executable',
    b'\xfe\xed\xfa\xcf': 'Mach-O executable',
    b'\xce\xfa\xed\xfe': 'Mach-O executable',
    b'\xcf\xfa\xed\xfe': 'Mach-O executable',
    b'\xca\xfe\xba\xbe': 'Java class file',
    b'#!': 'executable script',
}

_UNITS = ('B', 'KB', 'MB', 'GB', 'TB')


def format_bytes(bytes_size: int) -> str:
    size = float(bytes_size)
    for unit in _UNITS[:-1]:
        if size < 1024:
            return f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} {_UNITS[-1]}"
