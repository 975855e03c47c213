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

import unittest

from shared import colors


class ColorsTest(unittest.TestCase):

    def test_primary_colors(self):
        self.assertEqual(colors.hex_to_hsl("#ff0000"), (0, 100, 50))
        self.assertEqual(colors.hex_to_hsl("#00ff00"), (120, 100, 50))
        self.assertEqual(colors.hex_to_hsl("#0000ff"), (240, 100, 50))

    def test_greys_have_no_saturation(self):
        self.assertEqual(colors.hex_to_hsl("#ffffff"), (0, 0, 100))
        self.assertEqual(colors.hex_to_hsl("#000000"), (0, 0, 0))

    def test_shorthand_and_missing_hash(self):
        self.assertEqual(colors.hex_to_hsl("f00"), (0, 100, 50))
        self.assertEqual(colors.normalize_hex("#abc"), "#AABBCC")

    def test_brand_color_variable(self):
        self.assertEqual(colors.hsl_variable("#6D5DFB"), "246 95% 67%")

    def test_invalid_color_raises(self):
        with self.assertRaises(colors.InvalidColorError):
            colors.hex_to_hsl("#12345")
        self.assertFalse(colors.is_hex_color("blue"))

    def test_theme_variables_and_stylesheet(self):
        variables = colors.build_theme_variables("#ffffff", "#000000", "#ff0000")
        self.assertEqual(variables["--primary"], "0 0% 100%")
        self.assertEqual(variables["--primary-foreground"], "222 47% 11%")
        self.assertEqual(variables["--secondary-foreground"], "210 40% 98%")
        self.assertEqual(variables["--ring"], variables["--primary"])
        css = colors.render_stylesheet(variables)
        self.assertTrue(css.startswith(":root {"))
        self.assertIn("--accent: 0 100% 50%;", css)


if __name__ == "__main__":
    unittest.main()
