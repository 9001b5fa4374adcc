# gridsync/__init__.py
# Description: Client-side dataset synchronization over HTTP (full and incremental loads, streamed updates).
#
__version__ = "0.1.0"
