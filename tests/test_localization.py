import pytest

from app.models.session import Language
from app.services.localization import LocalizedText


def test_placeholders_are_filled_in_order():
    texts = LocalizedText()

    message = texts.get("REPORT_RESPONSE", Language.EN, "Road Damage", "Chinchwad")

    assert "Road Damage" in message
    assert "Chinchwad division" in message


def test_marathi_variant_is_used():
    texts = LocalizedText()

    assert texts.get("NAME_CONFIRMATION", "mr", "Asha") == "धन्यवाद, Asha!"


def test_unknown_language_falls_back_to_english():
    texts = LocalizedText()

    assert texts.get("NAME_REQUEST", "fr") == texts.get("NAME_REQUEST", Language.EN)


def test_missing_key_raises():
    with pytest.raises(KeyError):
        LocalizedText().get("NO_SUCH_TEXT", Language.EN)


def test_menu_lists_every_option():
    menu = LocalizedText().menu(Language.EN)

    for option in range(1, 9):
        assert f"{option}." in menu
