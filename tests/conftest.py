"""Shared test fixtures."""

import io
import shutil
import tempfile

import numpy as np
import pytest
import soundfile as sf
from PIL import Image

from PackBrew.config import TranscodeConfig
from PackBrew.core import Asset, AudioFormat, ImageFormat, Node, Pack


def make_image_bytes(fmt="PNG", width=24, height=16, seed=0, mode="RGB"):
    """Encode a random test image with Pillow."""
    rng = np.random.default_rng(seed)
    channels = 4 if mode == "RGBA" else 3
    arr = rng.integers(0, 256, size=(height, width, channels), dtype=np.uint8)
    buf = io.BytesIO()
    Image.fromarray(arr).convert(mode).save(buf, format=fmt)
    return buf.getvalue()


def make_wav_bytes(seconds=0.1, rate=22050, channels=2, subtype="PCM_16"):
    """Encode a short sine tone as WAV."""
    t = np.arange(int(seconds * rate), dtype=np.float32) / rate
    tone = 0.4 * np.sin(2 * np.pi * 440.0 * t)
    samples = np.repeat(tone[:, None], channels, axis=1)
    buf = io.BytesIO()
    sf.write(buf, samples, rate, format="WAV", subtype=subtype)
    return buf.getvalue()


@pytest.fixture
def tmp_dir():
    d = tempfile.mkdtemp()
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def default_config():
    return TranscodeConfig()


@pytest.fixture
def png_asset():
    return Asset(ImageFormat.PNG, make_image_bytes("PNG"))


@pytest.fixture
def wav_asset():
    return Asset(AudioFormat.WAV, make_wav_bytes())


@pytest.fixture
def canonical_pack():
    """Pack whose images are all BMP and whose audio is all WAV."""
    return Pack(nodes=(
        Node("cover", image=Asset(ImageFormat.BMP, make_image_bytes("BMP", seed=1))),
        Node("intro", audio=Asset(AudioFormat.WAV, make_wav_bytes())),
        Node("stage", image=Asset(ImageFormat.BMP, make_image_bytes("BMP", seed=2)),
             audio=Asset(AudioFormat.WAV, make_wav_bytes(channels=1))),
    ), title="canonical")
