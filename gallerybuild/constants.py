"""
Shared constants for the gallery builder.
"""

SUPPORTED_FORMATS = {
    '.jpg',
    '.jpeg',
    '.png',
    '.webp',
    '.gif',
    '.bmp',
    '.tiff',
    '.heic',
    '.heif',
    '.hif',
}

HEIC_FORMATS = {'.heic', '.heif', '.hif'}

LIVE_PHOTO_VIDEO_EXTENSION = '.mov'

THUMBNAIL_EXTENSION = '.webp'
