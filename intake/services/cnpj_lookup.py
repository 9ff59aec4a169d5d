# intake/services/cnpj_lookup.py
"""
Company-registry lookup used to prefill the client form.
GET {CNPJ_LOOKUP_URL}/{14 digits}  (BrasilAPI response shape)
"""

import requests

from intake.config import settings
from intake.exceptions import ExternalServiceError, NotFoundError, ValidationError
from intake.schemas.client import CnpjLookupOut
from intake.utils.logger import get_logger
from intake.utils.normalize import digits_only, format_cnpj, format_phone

logger = get_logger(__name__)

ADDRESS_FIELDS = ("logradouro", "numero", "complemento", "bairro", "municipio", "uf", "cep")


def to_prefill(data: dict) -> CnpjLookupOut:
    address = ", ".join(str(data[k]) for k in ADDRESS_FIELDS if data.get(k))
    phone = digits_only(data.get("ddd_telefone_1"))
    email = (data.get("email") or "").lower()
    return CnpjLookupOut(
        cnpj=format_cnpj(data.get("cnpj")),
        name=data.get("razao_social") or None,
        trade_name=data.get("nome_fantasia") or None,
        address=address or None,
        phone=format_phone(phone) if phone else None,
        email=email or None,
    )


def lookup_cnpj(cnpj: str, timeout: float = 10) -> CnpjLookupOut:
    digits = digits_only(cnpj)
    if len(digits) != 14:
        raise ValidationError("Error: CNPJ must have 14 digits")

    url = f"{settings.CNPJ_LOOKUP_URL.rstrip('/')}/{digits}"
    try:
        resp = requests.get(url, timeout=timeout)
    except requests.exceptions.RequestException as e:
        logger.error(f"[CNPJ] Lookup for {digits} failed: {e}")
        raise ExternalServiceError("Error: company registry unavailable")

    if resp.status_code == 404:
        logger.warning(f"[CNPJ] {digits} not found in registry")
        raise NotFoundError("Error: CNPJ not found", cnpj=digits)
    if resp.status_code != 200:
        logger.error(f"[CNPJ] Registry returned HTTP {resp.status_code} for {digits}")
        raise ExternalServiceError("Error: company registry unavailable")

    data = resp.json()
    data.setdefault("cnpj", digits)
    logger.info(f"[CNPJ] Prefill found for {digits}")
    return to_prefill(data)
