import pytest

from modemlink.frame import (
    FrameDecoder,
    TransparentDecoder,
    crc16,
    encode_frame,
)

IMSI = "000000000000001"


def feed_all(decoder, data):
    return [r for r in (decoder.feed(b) for b in data) if r is not None]


def test_crc16_check_value():
    assert crc16(b"123456789") == 0x4B37


def test_crc16_empty_is_initial_value():
    assert crc16(b"") == 0xFFFF


def test_crc16_residue_is_zero():
    data = b"some payload bytes"
    value = crc16(data)
    assert crc16(data + value.to_bytes(2, "little")) == 0


def test_encode_frame_layout():
    payload = b"hello"
    frame = encode_frame(IMSI, payload)
    assert frame[:2] == b"V!"
    assert frame[-2:] == b"S$"
    assert frame[2:17] == IMSI.encode()
    assert frame[17:19] == len(payload).to_bytes(2, "big")
    assert frame[19:24] == payload
    assert len(frame) == len(payload) + 23
    assert frame[24:26] == crc16(frame[2:24]).to_bytes(2, "big")


def test_encode_frame_pads_short_imsi():
    frame = encode_frame(b"123", b"x")
    assert frame[2:17] == b"123" + b"\0" * 12


def test_encode_frame_truncates_long_imsi():
    frame = encode_frame("1234567890123456789", b"x")
    assert frame[2:17] == b"123456789012345"


def test_encode_frame_rejects_oversized_payload():
    with pytest.raises(ValueError):
        encode_frame(IMSI, bytes(0x10000))


@pytest.mark.parametrize("payload", [b"a", b"hello", bytes(range(256))])
def test_decoder_round_trip(payload):
    decoder = FrameDecoder()
    assert feed_all(decoder, encode_frame(IMSI, payload)) == [payload]


def test_decoder_skips_noise_and_decodes_two_frames():
    decoder = FrameDecoder()
    stream = b"xyz" + encode_frame(IMSI, b"one") + b"\r\n" + encode_frame(IMSI, b"two")
    assert feed_all(decoder, stream) == [b"one", b"two"]


def test_decoder_rejects_bad_crc_and_recovers():
    decoder = FrameDecoder()
    bad = bytearray(encode_frame(IMSI, b"data"))
    bad[-3] ^= 0xFF
    good = encode_frame(IMSI, b"ok")
    assert feed_all(decoder, bytes(bad) + good) == [b"ok"]


def test_decoder_rejects_bad_tail():
    decoder = FrameDecoder()
    bad = bytearray(encode_frame(IMSI, b"data"))
    bad[-1] = ord("X")
    assert feed_all(decoder, bytes(bad)) == []


def test_decoder_zero_length_frame_never_completes():
    decoder = FrameDecoder()
    assert feed_all(decoder, encode_frame(IMSI, b"")) == []


def test_decoder_reset_discards_partial_frame():
    decoder = FrameDecoder()
    frame = encode_frame(IMSI, b"abc")
    feed_all(decoder, frame[:10])
    decoder.reset()
    assert feed_all(decoder, frame) == [b"abc"]


def test_decoder_rejects_out_of_range_byte():
    with pytest.raises(ValueError):
        FrameDecoder().feed(256)


def test_transparent_reports_on_following_byte():
    decoder = TransparentDecoder()
    results = [decoder.feed(b) for b in b"+ESONMI=0,5,hello"]
    assert all(r is None for r in results)
    assert decoder.feed(ord("\r")) == b"hello"


def test_transparent_ignores_unrelated_text():
    decoder = TransparentDecoder()
    stream = b"OK\r\n+ESONMI=0,3,abc\r"
    assert feed_all(decoder, stream) == [b"abc"]


def test_transparent_wrong_socket_ignored():
    decoder = TransparentDecoder()
    assert feed_all(decoder, b"+ESONMI=1,3,abc\r") == []


def test_transparent_two_notifications():
    decoder = TransparentDecoder()
    stream = b"+ESONMI=0,2,hi\n+ESONMI=0,4,data\n"
    assert feed_all(decoder, stream) == [b"hi", b"data"]


def test_transparent_payload_may_contain_binary():
    decoder = TransparentDecoder()
    payload = bytes([0, 255, 44, 10])
    assert feed_all(decoder, b"+ESONMI=0,4," + payload + b"\n") == [payload]


def test_transparent_reset():
    decoder = TransparentDecoder()
    feed_all(decoder, b"+ESONMI=0,5,he")
    decoder.reset()
    assert feed_all(decoder, b"llo\r+ESONMI=0,1,z\r") == [b"z"]