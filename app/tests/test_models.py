import pytest
from pydantic import ValidationError

from app.models.license import License, LicenseStatus, can_transition
from app.models.stripe.checkout import CheckoutSession
from app.models.users import RedeemDTO, RegisterDTO, ValidateLicenseDTO
from app.services.licenses.codes import LICENSE_CODE_PATTERN, generate_license_code


def test_generated_codes_are_grouped_uppercase_hex():
    codes = {generate_license_code() for _ in range(50)}

    assert all(LICENSE_CODE_PATTERN.match(code) for code in codes)
    assert len(codes) > 1


@pytest.mark.parametrize("stored, expected", [
    ("available", LicenseStatus.AVAILABLE),
    ("unused", LicenseStatus.AVAILABLE),
    ("reserved", LicenseStatus.RESERVED),
    ("sold", LicenseStatus.RESERVED),
    ("redeemed", LicenseStatus.REDEEMED),
    ("used", LicenseStatus.REDEEMED),
    ("USED", LicenseStatus.REDEEMED),
    (None, LicenseStatus.AVAILABLE),
])
def test_status_normalization(stored, expected):
    assert LicenseStatus.normalize(stored) == expected


def test_unknown_status_is_rejected():
    with pytest.raises(ValueError):
        LicenseStatus.normalize("revoked")


def test_redeemed_is_terminal():
    assert can_transition(LicenseStatus.AVAILABLE, LicenseStatus.RESERVED)
    assert can_transition(LicenseStatus.AVAILABLE, LicenseStatus.REDEEMED)
    assert can_transition(LicenseStatus.RESERVED, LicenseStatus.REDEEMED)
    assert not can_transition(LicenseStatus.RESERVED, LicenseStatus.AVAILABLE)
    assert not any(can_transition(LicenseStatus.REDEEMED, target) for target in LicenseStatus)


def test_license_reads_legacy_key_column():
    license = License(id=1, code=None, license_key="ABCD-0000-1111", status="used", user_id=None, metadata=None)

    assert license.code == "ABCD-0000-1111"
    assert license.status == LicenseStatus.REDEEMED


def test_redeemable_statuses():
    assert License(id=1, code="A", status="available").is_redeemable
    assert License(id=1, code="A", status="sold").is_redeemable
    assert not License(id=1, code="A", status="used", user_id="u1").is_redeemable


def test_validate_license_dto_accepts_snake_and_camel_case():
    assert ValidateLicenseDTO.model_validate({"license_key": "AAAA-BBBB-CCCC"}).license_key == "AAAA-BBBB-CCCC"
    assert ValidateLicenseDTO.model_validate({"licenseKey": "AAAA-BBBB-CCCC", "email": "A@x.com"}).email == "a@x.com"


def test_register_dto_accepts_camel_case_and_normalizes_email():
    dto = RegisterDTO.model_validate({"email": " A@X.com ", "password": "longpass1", "licenseCode": "AAAA-BBBB-CCCC"})

    assert dto.email == "a@x.com"
    assert dto.license_code == "AAAA-BBBB-CCCC"


def test_register_dto_rejects_unknown_fields():
    with pytest.raises(ValidationError):
        RegisterDTO.model_validate({"email": "a@x.com", "password": "longpass1", "isAdmin": True})


def test_redeem_dto_requires_a_user():
    with pytest.raises(ValidationError):
        RedeemDTO.model_validate({"code": "AAAA-BBBB-CCCC"})


def test_checkout_session_purchaser_email_prefers_customer_details():
    session = CheckoutSession.model_validate({
        "id": "cs_1",
        "payment_status": "paid",
        "customer_email": "other@x.com",
        "customer_details": {"email": "Buyer@X.com"},
        "metadata": None,
    })

    assert session.purchaser_email == "buyer@x.com"
    assert session.is_paid
    assert session.price_id is None
