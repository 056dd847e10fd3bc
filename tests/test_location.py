# tests/test_location.py
from fms.classification.location import LocationExtractor, extract_floor_number, extract_location


def test_ordinal_floor():
    info = extract_location("AC not working 3rd floor cafeteria")
    assert info.floor_number == 3
    assert info.location == "Cafeteria"


def test_floor_pattern_priority():
    assert extract_floor_number("floor 7 lobby") == 7
    assert extract_floor_number("12 floor") == 12
    # ordinal form is tried before "floor <n>"
    assert extract_floor_number("2nd floor, near floor 9 stairs") == 2


def test_ground_and_basement_only_without_numbers():
    assert extract_floor_number("leak on the ground floor") == 0
    assert extract_floor_number("basement parking lights") == -1
    assert extract_floor_number("basement stairs to 4th floor") == 4


def test_no_floor():
    assert extract_floor_number("printer jammed") is None
    assert extract_floor_number("") is None
    assert extract_floor_number(None) is None


def test_location_table_order_breaks_ties():
    # "pantry" (Cafeteria) is declared before "desk" (Cabin)
    assert extract_location("spill at the pantry desk").location == "Cafeteria"
    assert extract_location("front desk light").location == "Reception"


def test_location_needs_whole_word():
    # "loo" inside "floor" is not a washroom
    assert extract_location("5th floor corridor").location is None
    assert extract_location("loo on 5th floor").location == "Washroom"


def test_multi_word_locations():
    assert extract_location("server room too hot").location == "Server Room"
    assert extract_location("UPS room smells burnt").location == "Electrical Room"


def test_injected_location_table():
    extractor = LocationExtractor((("Gym", ("gym", "treadmill")),))
    assert extractor.extract_location("treadmill belt torn") == "Gym"
    assert extractor.extract_location("cafeteria") is None


def test_plural_locations():
    assert extract_location("Washrooms on 2nd floor are dirty") == extract_location("washroom 2nd floor dirty")
    assert extract_location("Washrooms on 2nd floor are dirty").location == "Washroom"
    assert extract_location("toilets blocked").location == "Washroom"
    assert extract_location("all cabins are warm").location == "Cabin"
    assert extract_location("terraces need sweeping").location == "Terrace"
    assert extract_location("conferences rooms booked").location == "Conference Room"


def test_plural_ending_does_not_open_other_words():
    assert extract_location("loose tile near lift").location is None
    assert extract_location("look at the elevator").location is None
