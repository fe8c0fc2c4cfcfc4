from app.utils.phone import format_phone_number, normalize_user_id, user_id_variants


def test_normalize_user_id_accepts_every_incoming_shape():
    expected = "whatsapp:+919876543210"
    for raw in ("whatsapp:+919876543210", "whatsapp: 919876543210", "+919876543210", " 919876543210 ",
                "WhatsApp:+919876543210", "whatsapp:whatsapp:+919876543210"):
        assert normalize_user_id(raw) == expected


def test_normalize_user_id_without_prefix():
    assert normalize_user_id("whatsapp:+919876543210", include_prefix=False) == "919876543210"


def test_empty_user_id():
    assert normalize_user_id(None) == "whatsapp:+unknown"


def test_user_id_variants():
    assert user_id_variants("whatsapp:+919876543210") == ["919876543210", "+919876543210"]


def test_format_phone_number_adds_country_code_to_local_numbers():
    assert format_phone_number("98765 43210") == "whatsapp:+919876543210"
    assert format_phone_number("09876543210") == "whatsapp:+919876543210"


def test_format_phone_number_keeps_international_numbers():
    assert format_phone_number("+91 98765-43210") == "whatsapp:+919876543210"
    assert format_phone_number("whatsapp:+447700900123") == "whatsapp:+447700900123"


def test_format_phone_number_rejects_empty_values():
    assert format_phone_number(None) is None
    assert format_phone_number("   ") is None
    assert format_phone_number("n/a") is None
