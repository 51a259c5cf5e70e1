"""
bdemucs - batch instrumental / multitrack conversion with Demucs and FFmpeg.
"""

__version__ = '0.3.0'
