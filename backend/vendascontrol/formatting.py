# Overview: Display masks for Brazilian phone numbers, CPF/CNPJ documents and CEP codes.

import re

_NON_DIGITS = re.compile(r"\D")


def digits_only(value: str | None) -> str:
    if not value:
        return ""
    return _NON_DIGITS.sub("", value)


def mask_phone(value: str | None) -> str:
    """(11) 98765-4321 / (11) 3456-7890"""
    digits = digits_only(value)
    if not digits:
        return ""
    masked = re.sub(r"^(\d{2})(\d)", r"(\1) \2", digits)
    masked = re.sub(r"(\d)(\d{4})$", r"\1-\2", masked)
    return masked[:15]


def mask_document(value: str | None) -> str:
    """CPF (11 digits) as 000.000.000-00, CNPJ (14 digits) as 00.000.000/0000-00."""
    digits = digits_only(value)[:14]
    if not digits:
        return ""
    if len(digits) <= 11:
        masked = re.sub(r"(\d{3})(\d)", r"\1.\2", digits, count=1)
        masked = re.sub(r"(\d{3})(\d)", r"\1.\2", masked, count=1)
        return re.sub(r"(\d{3})(\d{1,2})$", r"\1-\2", masked)
    masked = re.sub(r"(\d{2})(\d)", r"\1.\2", digits, count=1)
    masked = re.sub(r"(\d{3})(\d)", r"\1.\2", masked, count=1)
    masked = re.sub(r"(\d{3})(\d)", r"\1/\2", masked, count=1)
    return re.sub(r"(\d{4})(\d{1,2})$", r"\1-\2", masked)


def mask_cep(value: str | None) -> str:
    digits = digits_only(value)
    return re.sub(r"(\d{5})(\d)", r"\1-\2", digits)[:9]
