import re

from app.core.verification_code import generate_verification_code, normalize_verification_code

UUID4_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


def test_generate_verification_code_format() -> None:
    code = generate_verification_code()
    assert UUID4_RE.match(code)


def test_generate_verification_code_uniqueness() -> None:
    codes = {generate_verification_code() for _ in range(500)}
    assert len(codes) == 500


def test_normalize_verification_code() -> None:
    assert normalize_verification_code("  3F2B8C1E-6A0D ") == "3f2b8c1e-6a0d"
    assert normalize_verification_code("") == ""
    assert normalize_verification_code(None) == ""
