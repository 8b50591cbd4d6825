from mfi_index.core.banding import band_for_percentage, band_for_product_tests, classify_compliance
from mfi_index.core.models import FortificationBand


def test_fully_fortified():
    assert classify_compliance([100, 100]) == FortificationBand.FULLY
    assert classify_compliance([99, 106]) == FortificationBand.FULLY


def test_adequately_fortified_when_any_value_reaches_80():
    assert classify_compliance([85, 70]) == FortificationBand.ADEQUATELY
    # first match wins: one high value is enough even if another is low
    assert classify_compliance([100, 40]) == FortificationBand.ADEQUATELY


def test_lower_bands():
    assert classify_compliance([66, 67, 76]) == FortificationBand.PARTLY
    assert classify_compliance([45, 20]) == FortificationBand.INADEQUATELY
    assert classify_compliance([20, 25]) == FortificationBand.NOT_FORTIFIED
    assert classify_compliance([30]) == FortificationBand.NOT_FORTIFIED


def test_no_descriptor():
    assert classify_compliance([]) is None
    assert classify_compliance(["N/A", None]) is None
    assert classify_compliance([30.5]) is None


def test_string_percentages_are_parsed():
    assert classify_compliance(["100", "99.5"]) == FortificationBand.FULLY


def test_band_for_percentage_table():
    assert band_for_percentage(100) == FortificationBand.FULLY
    assert band_for_percentage(99) == FortificationBand.ADEQUATELY
    assert band_for_percentage(79) == FortificationBand.PARTLY
    assert band_for_percentage(50) == FortificationBand.INADEQUATELY
    assert band_for_percentage(30.9) == FortificationBand.NOT_FORTIFIED
    assert band_for_percentage(None) is None


def test_band_for_product_tests_uses_first_test():
    tests = [
        {"results": [{"percentage_compliance": 20}, {"percentage_compliance": 25}]},
        {"results": [{"percentage_compliance": 100}]},
    ]
    assert band_for_product_tests(tests) == FortificationBand.NOT_FORTIFIED
    assert band_for_product_tests([]) is None


def test_band_for_product_tests_ignores_unusable_results():
    assert band_for_product_tests([{"results": 5}]) is None
    assert band_for_product_tests([{"results": {"percentage_compliance": 100}}]) is None
    assert band_for_product_tests(["not-a-test"]) is None
