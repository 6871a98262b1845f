"""
Shared constants for the S3 Image Compressor project
"""

# Supported source extensions (compared lowercase)
SUPPORTED_FORMATS = {'jpg', 'jpeg', 'png'}
JPEG_EXTENSIONS = {'jpg', 'jpeg'}
PNG_EXTENSIONS = {'png'}

# Objects below this size are tagged but not transcoded
SIZE_THRESHOLD_BYTES = 300 * 1024

# Output dimensions relative to the source
SCALE_FACTOR = 0.5

# Idempotency marker written to source and destination objects
COMPRESSED_TAG_KEY = "compressed"
COMPRESSED_TAG_VALUE = "true"

# JPEG encoder settings
JPEG_QUALITY = 50
JPEG_CHROMA_SUBSAMPLING = "4:2:0"

# PNG encoder settings
PNG_COMPRESS_LEVEL = 9
PNG_PALETTE_COLORS = 128

# S3 notification suffix filters used by the stack
NOTIFICATION_SUFFIXES = ['.jpg', '.jpeg', '.png', '.JPG', '.JPEG', '.PNG']
