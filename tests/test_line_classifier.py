"""Unit tests for the date/location line classifier."""
from processor.line_classifier import KeywordLineClassifier, LineKind, split_lines


class TestKeywordLineClassifier:
    """Test cases for KeywordLineClassifier."""

    def test_location_keyword_beats_time_token(self):
        """Test a room name that looks like a time is a location."""
        classifier = KeywordLineClassifier()

        assert classifier.classify("Hamilton Library 10:30am Room") == LineKind.LOCATION
        assert classifier.classify("Hamilton Library, 3:00pm") == LineKind.LOCATION

    def test_date_lines(self):
        """Test date/time shaped lines."""
        classifier = KeywordLineClassifier()

        assert classifier.classify("March 5, 2025 9:00am - 11:00am") == LineKind.DATE
        assert classifier.classify("9:00am") == LineKind.DATE
        assert classifier.classify("All day") == LineKind.DATE
        assert classifier.classify("Thursday, Oct 2") == LineKind.DATE

    def test_unmatched_line_is_location(self):
        """Test lines with neither keyword nor date are location text."""
        classifier = KeywordLineClassifier()

        assert classifier.classify("Kuykendall 101") == LineKind.LOCATION

    def test_keyword_is_word_bounded(self):
        """Test keywords only match whole words."""
        classifier = KeywordLineClassifier()

        assert classifier.classify("Hallowe'en party 7:00pm") == LineKind.DATE

    def test_custom_keywords(self):
        """Test a custom dictionary replaces the default one."""
        classifier = KeywordLineClassifier(location_keywords=['Manoa Garden'])

        assert classifier.classify("Manoa Garden 5:00pm") == LineKind.LOCATION
        assert classifier.classify("Hamilton Library 5:00pm") == LineKind.DATE


def test_split_lines_keeps_order():
    """Test split_lines buckets lines in order."""
    lines = ["March 5, 2025", "Hamilton Library, Room 301", "9:00am - 10:00am", "Online"]

    date_lines, location_lines = split_lines(lines, KeywordLineClassifier())

    assert date_lines == ["March 5, 2025", "9:00am - 10:00am"]
    assert location_lines == ["Hamilton Library, Room 301", "Online"]


def test_split_lines_accepts_any_classifier():
    """Test a swapped-in classifier drives the split."""
    class EverythingIsDate:
        def classify(self, line):
            return LineKind.DATE

    date_lines, location_lines = split_lines(["Campus Center"], EverythingIsDate())

    assert date_lines == ["Campus Center"]
    assert location_lines == []
