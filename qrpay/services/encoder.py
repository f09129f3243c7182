"""Payment payload encoder.

Three payload flavours are produced from the same triple and payee profile:

    FAST_PAYMENT   ST00012|Name=..|PersonalAcc=..|BankName=..|BIC=..|
                   CorrespAcc=..|PayeeINN=..|Sum=<kopecks>|Purpose=..
    BANK_TRANSFER  BANK|INN|account|BIC|corr|<kopecks>|purpose|name
    PLAIN_TEXT     human-readable one-liner, not meant to be parsed

Free-text fields are sanitized because ``|`` is the field delimiter and raw
control characters break scanning. Sums are integer kopecks, truncated.
"""

from __future__ import annotations

from qrpay.models.amounts import AmountTriple
from qrpay.models.constants import BANK_TRANSFER_TAG, FAST_PAYMENT_TAG
from qrpay.models.payment import PaymentProfile, QRFormat
from qrpay.services.money import format_grouped, to_minor_units


def sanitize(text: str) -> str:
    return (
        text.replace("|", "")
        .replace("\\", "")
        .replace("\n", " ")
        .replace("\r", " ")
        .strip()
    )


def build_purpose(amount_a: float, contract_enabled: bool, contract_number: str) -> str:
    service = f"Goods payment service {format_grouped(amount_a)} RMB"
    if contract_enabled:
        return f"Payment under contract {contract_number}. {service}"
    return service


def encode_payload(
    triple: AmountTriple,
    profile: PaymentProfile,
    purpose: str,
    fmt: QRFormat,
) -> str:
    if fmt is QRFormat.FAST_PAYMENT:
        fields = (
            ("Name", sanitize(profile.legal_name)),
            ("PersonalAcc", profile.account_number),
            ("BankName", sanitize(profile.bank_name)),
            ("BIC", profile.bic),
            ("CorrespAcc", profile.corr_account),
            ("PayeeINN", profile.payee_inn),
            ("Sum", str(to_minor_units(triple.amount_b))),
            ("Purpose", sanitize(purpose)),
        )
        return "|".join([FAST_PAYMENT_TAG] + [f"{k}={v}" for k, v in fields])

    if fmt is QRFormat.BANK_TRANSFER:
        return "|".join(
            [
                BANK_TRANSFER_TAG,
                profile.payee_inn,
                profile.account_number,
                profile.bic,
                profile.corr_account,
                str(to_minor_units(triple.amount_b)),
                sanitize(purpose),
                sanitize(profile.legal_name),
            ]
        )

    if fmt is QRFormat.PLAIN_TEXT:
        return (
            f"SBP: {format_grouped(triple.amount_b)} RUB - {purpose} - "
            f"Payee: {profile.legal_name} ({profile.payee_inn}) - "
            f"Account: {profile.account_number}"
        )

    raise ValueError(f"Unsupported QR format {fmt!r}")


def parse_minor_units(payload: str, fmt: QRFormat) -> int:
    """Recover the kopeck sum from a machine-readable payload."""
    parts = payload.split("|")
    if fmt is QRFormat.FAST_PAYMENT:
        for part in parts[1:]:
            key, _, value = part.partition("=")
            if key == "Sum":
                return int(value)
        raise ValueError("payload has no Sum field")
    if fmt is QRFormat.BANK_TRANSFER:
        return int(parts[5])
    raise ValueError(f"{fmt.value} payloads carry no machine-readable sum")
