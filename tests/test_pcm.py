"""Tests for PCM16 wire encoding and decoding."""
import base64

import numpy as np
import pytest

from mockprep.infrastructure.audio import (
    encode_pcm16, decode_pcm16, float_to_pcm16, StreamResampler, DecodeError, INPUT_MIME_TYPE
)


def wire_ints(chunk):
    return np.frombuffer(base64.b64decode(chunk.data), dtype="<i2")


def b64_of(ints):
    return base64.b64encode(np.asarray(ints, dtype="<i2").tobytes()).decode("ascii")


def test_half_scale_sample_encodes_to_16384():
    chunk = encode_pcm16([0.5])

    assert wire_ints(chunk).tolist() == [16384]
    assert chunk.mime_type == INPUT_MIME_TYPE == "audio/pcm;rate=16000"
    assert chunk.to_wire() == {"mimeType": "audio/pcm;rate=16000", "data": chunk.data}


def test_16384_decodes_to_half_scale():
    audio = decode_pcm16(b64_of([16384]))

    assert audio.samples.shape == (1, 1)
    assert audio.samples[0, 0] == pytest.approx(0.5)
    assert audio.sample_rate == 24000


def test_values_inside_range_survive_encode_decode():
    samples = np.linspace(-0.999, 0.999, 101)
    decoded = decode_pcm16(encode_pcm16(samples).data, sample_rate=16000)

    assert np.max(np.abs(decoded.channel(0) - samples)) <= 1.0 / 32768


def test_encoding_truncates_toward_zero():
    assert float_to_pcm16([0.00002, -0.00002, 0.75, -0.75]).tolist() == [0, 0, 24576, -24576]


def test_out_of_range_input_wraps_instead_of_clamping():
    assert float_to_pcm16([1.0, -1.0, 1.5]).tolist() == [-32768, -32768, -16384]


def test_non_finite_samples_become_silence():
    assert float_to_pcm16([np.nan, np.inf, -np.inf]).tolist() == [0, 0, 0]


def test_empty_buffer_round_trip():
    chunk = encode_pcm16([])

    assert chunk.data == ""
    assert decode_pcm16(chunk.data).frame_count == 0


def test_interleaved_stereo_is_split_into_channels():
    audio = decode_pcm16(b64_of([16384, -16384, 8192, -8192]), num_channels=2)

    assert audio.samples.shape == (2, 2)
    assert audio.channel(0).tolist() == pytest.approx([0.5, 0.25])
    assert audio.channel(1).tolist() == pytest.approx([-0.5, -0.25])


def test_duration_follows_sample_rate():
    audio = decode_pcm16(b64_of(np.zeros(24000, dtype=np.int16)))

    assert audio.duration == pytest.approx(1.0)


def test_invalid_base64_raises_decode_error():
    with pytest.raises(DecodeError):
        decode_pcm16("not base64 at all!")


def test_odd_byte_count_raises_decode_error():
    with pytest.raises(DecodeError):
        decode_pcm16(base64.b64encode(b"\x01\x02\x03").decode("ascii"))


def test_length_must_fit_channel_layout():
    with pytest.raises(DecodeError):
        decode_pcm16(b64_of([1, 2, 3]), num_channels=2)


def test_wrap_holds_beyond_int64_range():
    # 2**49 + 0.5 scales to 2**64 + 16384
    assert float_to_pcm16([2.0 ** 49 + 0.5, 2.0]).tolist() == [16384, 0]


def test_resampler_passes_matching_rates_through():
    resampler = StreamResampler(16000, 16000)

    assert resampler.passthrough
    assert resampler.process(np.full(480, 0.25)).tolist() == [0.25] * 480


@pytest.mark.parametrize("from_rate", [48000, 44100])
def test_block_wise_resampling_matches_one_pass(from_rate):
    rng = np.random.default_rng(7)
    signal = rng.uniform(-0.5, 0.5, 12000)
    blocks = [0, 441, 1000, 37, 4096, 12000]

    whole = StreamResampler(from_rate, 16000).process(signal)
    streaming = StreamResampler(from_rate, 16000)
    pieces = [streaming.process(signal[a:b]) for a, b in zip(blocks, blocks[1:])]
    chunked = np.concatenate(pieces)

    assert len(whole) == -(-12000 * 16000 // from_rate)
    assert chunked.shape == whole.shape
    np.testing.assert_allclose(chunked, whole, atol=1e-6)


def test_resampled_tone_keeps_its_level_across_blocks():
    t = np.arange(48000) / 48000.0
    tone = 0.5 * np.sin(2 * np.pi * 220 * t)
    resampler = StreamResampler(48000, 16000)

    out = np.concatenate([resampler.process(tone[i:i + 1024]) for i in range(0, len(tone), 1024)])

    assert len(out) == 16000
    settled = out[200:]
    assert np.max(np.abs(settled)) == pytest.approx(0.5, abs=0.01)
    # No seam spikes: consecutive samples of a 220 Hz tone at 16 kHz move by under 0.05
    assert np.max(np.abs(np.diff(settled))) < 0.05
