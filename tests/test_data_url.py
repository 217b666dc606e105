import base64

from palmguru.vision import encode_data_url, decode_data_url, split_data_url, strip_prefix, make_prefix


def test_strip_and_re_add_prefix_reconstructs_data_url():
    data_url = encode_data_url(b"\xff\xd8palm", "image/jpeg")

    assert make_prefix("image/jpeg") + strip_prefix(data_url) == data_url


def test_split_returns_mime_and_payload():
    payload = base64.b64encode(b"png-bytes").decode()

    assert split_data_url(f"data:image/png;base64,{payload}") == ("image/png", payload)


def test_split_without_prefix_defaults_to_jpeg():
    assert split_data_url("QUJD") == ("image/jpeg", "QUJD")


def test_decode_returns_original_bytes():
    assert decode_data_url(encode_data_url(b"raw image", "image/webp")) == b"raw image"
