import hashlib
import hmac

import pytest

from aydf.gateway import compute_signature, verify_signature

SECRET = "test_secret_5678"


@pytest.mark.parametrize("order_id, payment_id", [
    ("order_IluGWxBm9U8zJ8", "pay_IluGZyj4ObYqK2"),
    ("order_1", "pay_abc"),
    ("", ""),
    ("order_with|pipe", "pay_ünïcode"),
])
def test_valid_signature_is_accepted(order_id, payment_id):
    signature = hmac.new(SECRET.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()

    assert compute_signature(order_id, payment_id, SECRET) == signature
    assert verify_signature(order_id, payment_id, signature, SECRET) is True


def test_signature_for_other_payment_is_rejected():
    signature = compute_signature("order_1", "pay_1", SECRET)

    assert verify_signature("order_1", "pay_2", signature, SECRET) is False
    assert verify_signature("order_2", "pay_1", signature, SECRET) is False


def test_signature_made_with_other_secret_is_rejected():
    signature = compute_signature("order_1", "pay_1", "someone_elses_secret")

    assert verify_signature("order_1", "pay_1", signature, SECRET) is False


def test_tampered_signature_is_rejected():
    signature = compute_signature("order_1", "pay_1", SECRET)
    tampered = ("0" if signature[0] != "0" else "1") + signature[1:]

    assert verify_signature("order_1", "pay_1", tampered, SECRET) is False
    assert verify_signature("order_1", "pay_1", signature.upper(), SECRET) is False


@pytest.mark.parametrize("signature", ["", "not-hex", "abc123", None, 12345, "ünïcode-sig"])
def test_malformed_signature_returns_false(signature):
    assert verify_signature("order_1", "pay_1", signature, SECRET) is False


def test_missing_secret_returns_false_instead_of_raising():
    signature = compute_signature("order_1", "pay_1", SECRET)

    assert verify_signature("order_1", "pay_1", signature, None) is False


def test_missing_identifiers_return_false():
    assert verify_signature(None, "pay_1", "sig", SECRET) is False
