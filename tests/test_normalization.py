"""Tests for app name canonicalization and matching."""

import unittest

from space_tracker.normalization import (
    app_matches,
    canonical_app_name,
    dedupe_app_names,
    display_app_name,
)


class TestCanonicalAppName(unittest.TestCase):
    def test_trims_and_lowercases(self):
        self.assertEqual(canonical_app_name("  Visual Studio Code "), "visual studio code")

    def test_empty_values(self):
        self.assertEqual(canonical_app_name(None), "")
        self.assertEqual(canonical_app_name("   "), "")


class TestAppMatches(unittest.TestCase):
    def test_case_insensitive_exact(self):
        self.assertEqual(app_matches("code", ["Code"]), "Code")

    def test_substring_in_either_direction(self):
        self.assertEqual(app_matches("Code", ["Visual Studio Code"]), "Visual Studio Code")
        self.assertEqual(app_matches("Google Chrome", ["chrome"]), "chrome")

    def test_no_match(self):
        self.assertIsNone(app_matches("Chrome", ["Code"]))

    def test_blank_never_matches(self):
        self.assertIsNone(app_matches("", ["Code"]))
        self.assertIsNone(app_matches("Code", ["", "  "]))


class TestDedupe(unittest.TestCase):
    def test_drops_duplicates_and_blanks(self):
        self.assertEqual(
            dedupe_app_names(["Code", " code ", "", "Chrome", "CHROME"]),
            ["Code", "Chrome"],
        )


class TestDisplayAppName(unittest.TestCase):
    def test_strips_exe_suffix(self):
        self.assertEqual(display_app_name("Code.exe"), "Code")
        self.assertEqual(display_app_name("slack.EXE"), "slack")
        self.assertEqual(display_app_name("Safari"), "Safari")
        self.assertIsNone(display_app_name(None))


if __name__ == "__main__":
    unittest.main()
