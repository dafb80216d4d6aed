"""
WBI 签名。

img_key / sub_key 来自 /x/web-interface/nav 返回的 wbi_img 图片文件名，
按固定置换表重排后取前 32 位作为 mixin key。
"""
import hashlib
from typing import Dict, Optional
from urllib.parse import urlencode

from ...infrastructure.utils import time_util

MIXIN_KEY_ENC_TAB = [
    46, 47, 18, 2, 53, 8, 23, 32, 15, 50, 10, 31, 58, 3, 45, 35, 27, 43, 5, 49,
    33, 9, 42, 19, 29, 28, 14, 39, 12, 38, 41, 13, 37, 48, 7, 16, 24, 55, 40,
    61, 26, 17, 0, 1, 60, 51, 30, 4, 22, 25, 54, 21, 56, 59, 6, 63, 57, 62, 11,
    36, 20, 34, 44, 52,
]

_FILTERED_CHARS = "!'()*"


def key_from_url(url: str) -> str:
    """https://i0.hdslb.com/bfs/wbi/7cd0...png -> 7cd0..."""
    return url.rsplit("/", 1)[-1].split(".")[0]


def get_mixin_key(img_key: str, sub_key: str) -> str:
    raw = img_key + sub_key
    return "".join(raw[i] for i in MIXIN_KEY_ENC_TAB if i < len(raw))[:32]


def sign_params(params: Dict, img_key: str, sub_key: str, wts: Optional[int] = None) -> Dict[str, str]:
    """返回追加了 wts 与 w_rid 的新参数字典"""
    mixin_key = get_mixin_key(img_key, sub_key)
    signed = dict(params)
    signed["wts"] = wts if wts is not None else time_util.get_unix_timestamp()
    signed = {
        k: "".join(ch for ch in str(v) if ch not in _FILTERED_CHARS)
        for k, v in sorted(signed.items())
    }
    query = urlencode(signed)
    signed["w_rid"] = hashlib.md5((query + mixin_key).encode("utf-8")).hexdigest()
    return signed
