"""色の値オブジェクトと色指定の解析。

Pure Pythonで実装（外部ライブラリ依存なし）。
"""

from __future__ import annotations

from dataclasses import dataclass

# ITU-R BT.601 輝度係数
LUMA_R = 0.299
LUMA_G = 0.587
LUMA_B = 0.114


@dataclass(frozen=True)
class RGB:
    """RGB色空間の色。各チャンネル 0-255。"""

    r: int
    g: int
    b: int

    def to_tuple(self) -> tuple[int, int, int]:
        return (self.r, self.g, self.b)

    @classmethod
    def from_hex(cls, value: str) -> RGB:
        """'#RRGGBB' 形式から生成。"""
        text = value.lstrip("#")
        if len(text) != 6:
            raise ValueError(f"invalid hex color: {value!r}")
        return cls(int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))


WHITE = RGB(255, 255, 255)
BLACK = RGB(0, 0, 0)


def parse_color(value: str | tuple[int, int, int] | RGB) -> RGB:
    """'#RRGGBB'、RGB タプル、RGB のいずれかを RGB に正規化。"""
    if isinstance(value, RGB):
        return value
    if isinstance(value, str):
        return RGB.from_hex(value)
    r, g, b = value
    return RGB(int(r), int(g), int(b))
