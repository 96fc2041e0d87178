"""Fixed-width 5x7 bitmap font for the OLED.

Each glyph is 4 pixels wide inside a 5x7 cell, leaving one blank column
as character spacing. Glyph rows are stored top to bottom as one hex
nibble per row, most significant bit on the left.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from PIL import ImageDraw

# fmt: off
_GLYPHS_5X7: dict[str, str] = {
    " ": "0000000", "!": "4444404", '"': "AA00000", "#": "0AFAFA0",
    "$": "47C63E4", "%": "CD24B30", "&": "4AA4AA5", "'": "4400000",
    "(": "2444442", ")": "4222224", "*": "0A4E4A0", "+": "044E440",
    ",": "0000448", "-": "000E000", ".": "0000004", "/": "1122448",
    "0": "69BD996", "1": "4C4444E", "2": "691248F", "3": "E11611E",
    "4": "26AAF22", "5": "F8E111E", "6": "698E996", "7": "F112444",
    "8": "6996996", "9": "6997196", ":": "0440440", ";": "0440448",
    "<": "0124210", "=": "00F0F00", ">": "0842480", "?": "6912404",
    "@": "69BBB86", "A": "699F999", "B": "E99E99E", "C": "6988896",
    "D": "E99999E", "E": "F88E88F", "F": "F88E888", "G": "698B996",
    "H": "999F999", "I": "E44444E", "J": "3111196", "K": "9ACCA99",
    "L": "888888F", "M": "9FF9999", "N": "9DDBB99", "O": "6999996",
    "P": "E99E888", "Q": "69999A5", "R": "E99EA99", "S": "6986196",
    "T": "E444444", "U": "9999996", "V": "9999AA4", "W": "9999FF9",
    "X": "9966699", "Y": "9964444", "Z": "F12488F", "[": "E88888E",
    "\\": "8844221", "]": "E22222E", "^": "4A00000", "_": "000000F",
    "`": "8400000", "a": "0061797", "b": "88E999E", "c": "0069896",
    "d": "1179997", "e": "0069F86", "f": "254E444", "g": "0799716",
    "h": "88E9999", "i": "40C444E", "j": "20622A4", "k": "889ACA9",
    "l": "C44444E", "m": "00AFF99", "n": "00E9999", "o": "0069996",
    "p": "0E99E88", "q": "0799711", "r": "00BC888", "s": "007861E",
    "t": "44E4443", "u": "0099997", "v": "00999A4", "w": "00999F6",
    "x": "0099669", "y": "0999716", "z": "00F124F", "{": "3442443",
    "|": "4444444", "}": "C44244C", "~": "005A000",
}
# fmt: on


@dataclass(frozen=True)
class MonoFont:
    """Monospace bitmap font with a fixed character cell."""

    cell_width: int
    cell_height: int
    baseline: int  # row of the baseline within the cell
    glyphs: dict[str, str] = field(repr=False)
    replacement: str = "?"

    def glyph(self, char: str) -> str:
        """Return the row bitmap for a character, or the replacement glyph."""
        return self.glyphs.get(char, self.glyphs[self.replacement])

    def text_width(self, text: str) -> int:
        return len(text) * self.cell_width

    def columns_for(self, width: int) -> int:
        """Number of whole character cells that fit in ``width`` pixels."""
        return max(width // self.cell_width, 0)

    def draw_text(
        self,
        draw: ImageDraw.ImageDraw,
        origin: tuple[int, int],
        text: str,
        fill: int = 255,
    ) -> None:
        """Draw a single line of text with its cell top-left at ``origin``.

        Pixels outside the image are clipped by Pillow.
        """
        x, y = origin
        points: list[tuple[int, int]] = []
        for index, char in enumerate(text):
            cell_x = x + index * self.cell_width
            for row, nibble in enumerate(self.glyph(char)):
                bits = int(nibble, 16)
                for col in range(4):
                    if bits & (0x8 >> col):
                        points.append((cell_x + col, y + row))
        if points:
            draw.point(points, fill=fill)


FONT_5X7 = MonoFont(cell_width=5, cell_height=7, baseline=6, glyphs=_GLYPHS_5X7)
