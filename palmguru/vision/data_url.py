"""
自描述图片编码（data URL）

格式：data:<mime>;base64,<payload>
"""
import base64
from typing import Tuple

DEFAULT_MIME = "image/jpeg"


def make_prefix(mime: str) -> str:
    """构建传输前缀，例如 data:image/jpeg;base64,"""
    return f"data:{mime};base64,"


def encode_data_url(data: bytes, mime: str = DEFAULT_MIME) -> str:
    """将图片字节编码为 data URL"""
    return make_prefix(mime) + base64.b64encode(data).decode("ascii")


def split_data_url(data_url: str) -> Tuple[str, str]:
    """拆分 data URL

    Args:
        data_url: data URL 字符串；没有前缀时整体视为 base64 内容

    Returns:
        (mime, payload) 元组，未声明 MIME 时返回 image/jpeg
    """
    if not data_url.startswith("data:") or "," not in data_url:
        return DEFAULT_MIME, data_url

    header, payload = data_url.split(",", 1)
    mime = header[len("data:"):].split(";", 1)[0] or DEFAULT_MIME
    return mime, payload


def strip_prefix(data_url: str) -> str:
    """去掉传输前缀，只保留 base64 内容"""
    return split_data_url(data_url)[1]


def decode_data_url(data_url: str) -> bytes:
    """解码 data URL 为原始字节"""
    return base64.b64decode(strip_prefix(data_url))
