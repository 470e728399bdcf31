import struct
from typing import NamedTuple

AUDIO_WAV_MIME = "audio/wav"
WAV_HEADER_SIZE = 44

# RIFF header, "fmt " chunk for linear PCM, "data" chunk header
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


class WavHeader(NamedTuple):
    riff_size: int
    audio_format: int
    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int


def pcm_to_wav(
    pcm: bytes,
    sample_rate: int = 24000,
    channels: int = 1,
    bits_per_sample: int = 16
) -> bytes:
    """Wrap raw little-endian PCM in a canonical 44-byte WAV header"""
    bytes_per_sample = bits_per_sample // 8
    data_size = len(pcm)
    header = _HEADER.pack(
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        1,
        channels,
        sample_rate,
        sample_rate * channels * bytes_per_sample,
        channels * bytes_per_sample,
        bits_per_sample,
        b"data",
        data_size,
    )
    return header + bytes(pcm)


def read_wav_header(data: bytes) -> WavHeader:
    if len(data) < WAV_HEADER_SIZE:
        raise ValueError(f"WAV data too short: {len(data)} bytes")
    fields = _HEADER.unpack_from(data)
    riff, riff_size, wave, fmt, fmt_size = fields[:5]
    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or fields[11] != b"data":
        raise ValueError("Not a canonical PCM WAV header")
    if fmt_size != 16:
        raise ValueError(f"Unexpected fmt chunk size {fmt_size}")
    return WavHeader(riff_size, *fields[5:11], fields[12])
