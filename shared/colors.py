# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import re
from typing import Dict, Tuple

HEX_COLOR_PATTERN = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


class InvalidColorError(ValueError):
    pass


def is_hex_color(value: str) -> bool:
    return bool(value and HEX_COLOR_PATTERN.match(value.strip()))


def normalize_hex(value: str) -> str:
    """Returns an uppercase #RRGGBB string, expanding #RGB shorthand."""
    match = HEX_COLOR_PATTERN.match((value or "").strip())
    if not match:
        raise InvalidColorError(f"Invalid hex color: {value!r}")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return "#" + digits.upper()


def hex_to_hsl(value: str) -> Tuple[int, int, int]:
    """
    Converts a hex color into rounded (hue, saturation, lightness).

    Hue is in degrees [0, 360), saturation and lightness in percent.
    """
    digits = normalize_hex(value)[1:]
    r, g, b = (int(digits[i : i + 2], 16) / 255 for i in (0, 2, 4))

    high = max(r, g, b)
    low = min(r, g, b)
    lightness = (high + low) / 2

    if high == low:
        hue = 0.0
        saturation = 0.0
    else:
        delta = high - low
        if lightness > 0.5:
            saturation = delta / (2 - high - low)
        else:
            saturation = delta / (high + low)
        if high == r:
            hue = (g - b) / delta + (6 if g < b else 0)
        elif high == g:
            hue = (b - r) / delta + 2
        else:
            hue = (r - g) / delta + 4
        hue /= 6

    return (
        round(hue * 360) % 360,
        round(saturation * 100),
        round(lightness * 100),
    )


def hsl_variable(value: str) -> str:
    """Formats a color the way CSS custom properties expect: 'H S% L%'."""
    hue, saturation, lightness = hex_to_hsl(value)
    return f"{hue} {saturation}% {lightness}%"


def foreground_for(value: str) -> str:
    """Picks a readable foreground (near-white or near-black) for a color."""
    _, _, lightness = hex_to_hsl(value)
    return "222 47% 11%" if lightness > 60 else "210 40% 98%"


def build_theme_variables(
    primary: str, secondary: str, accent: str
) -> Dict[str, str]:
    return {
        "--primary": hsl_variable(primary),
        "--primary-foreground": foreground_for(primary),
        "--secondary": hsl_variable(secondary),
        "--secondary-foreground": foreground_for(secondary),
        "--accent": hsl_variable(accent),
        "--accent-foreground": foreground_for(accent),
        "--ring": hsl_variable(primary),
    }


def render_stylesheet(variables: Dict[str, str]) -> str:
    body = "".join(f"  {name}: {value};\n" for name, value in variables.items())
    return ":root {\n" + body + "}\n"
