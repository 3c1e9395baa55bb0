# agency_api/services/lookup.py

"""
Address helpers for the lead and customer forms.

Company data comes from the Belgian enterprise register through one of two
commercial APIs (cbeapi.be first, kbo.party second); each needs its own key.
"""

import re
from typing import Optional

import httpx
from fastapi import HTTPException, Request
from pydantic import BaseModel

from agency_api.config import settings
from agency_api.utils.postcodes_be import city_for_postcode

CBEAPI_URL = "https://cbeapi.be/api/enterprises/{number}"
KBO_PARTY_URL = "https://kbo.party/api/v1/enterprise/{number}"


class CompanyLookupResult(BaseModel):
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    company_postal_code: Optional[str] = None
    company_city: Optional[str] = None
    company_country: str = "België"
    vat_number: Optional[str] = None


def normalize_belgian_vat(vat: str) -> Optional[str]:
    """
    "BE 0123.456.789", "0123456789" -> "BE0123456789".
    None when there are not exactly 10 digits.
    """
    cleaned = re.sub(r"[\s.]", "", vat or "").upper()
    if cleaned.startswith("BE"):
        cleaned = cleaned[2:]
    digits = re.sub(r"\D", "", cleaned)
    if len(digits) != 10:
        return None
    return f"BE{digits}"


def _first(data: dict, *keys) -> Optional[str]:
    for key in keys:
        if data.get(key):
            return data[key]
    return None


def _result_from(data: dict, address_source: dict, vat: str) -> Optional[CompanyLookupResult]:
    name = _first(data, "denomination", "denominationNL", "name", "legalName")
    street = _first(address_source, "address", "street", "fullAddress")
    postal_code = _first(address_source, "zipcode", "postalCode", "zipCode")
    city = _first(address_source, "city", "municipality", "municipalityNL")
    if not (name or street):
        return None

    full_address = ", ".join(part for part in (street, postal_code, city) if part) if street else None
    return CompanyLookupResult(
        company_name=name,
        company_address=full_address,
        company_postal_code=postal_code,
        company_city=city,
        vat_number=vat,
    )


async def fetch_cbeapi(client: httpx.AsyncClient, vat: str, api_key: str) -> Optional[CompanyLookupResult]:
    response = await client.get(
        CBEAPI_URL.format(number=vat[2:]),
        params={"lang": "nl"},
        headers={"Authorization": f"Bearer {api_key}"},
    )
    if response.status_code != 200:
        return None
    data = response.json()
    if not isinstance(data, dict):
        return None
    establishments = data.get("establishments") or data.get("addresses")
    first = establishments[0] if isinstance(establishments, list) and establishments else data
    if not isinstance(first, dict):
        first = data
    return _result_from(data, first, vat)


async def fetch_kbo_party(client: httpx.AsyncClient, vat: str, api_key: str) -> Optional[CompanyLookupResult]:
    response = await client.get(
        KBO_PARTY_URL.format(number=vat[2:]),
        headers={"Authorization": f"Bearer {api_key}"},
    )
    if response.status_code != 200:
        return None
    data = response.json()
    if not isinstance(data, dict):
        return None
    return _result_from(data, data, vat)


def postcode_lookup_service(postcode: Optional[str]) -> str:
    postcode = (postcode or "").strip()
    if not re.fullmatch(r"\d{4}", postcode):
        raise HTTPException(status_code=400, detail="Geef een postcode op (4 cijfers)")
    city = city_for_postcode(postcode)
    if city is None:
        raise HTTPException(status_code=404, detail="Postcode niet gevonden")
    return city


async def company_lookup_service(vat: Optional[str], request: Request) -> CompanyLookupResult:
    """
    Company details for a Belgian VAT number.

    - 400 when the number is missing or malformed
    - 503 when no register key is configured or the register cannot be reached
    - 404 when neither register knows the number
    """
    log = request.app.state.log
    client: httpx.AsyncClient = request.app.state.http

    if not vat or not vat.strip():
        raise HTTPException(status_code=400, detail="Geef een BTW-nummer op (bijv. BE0123456789)")
    normalized = normalize_belgian_vat(vat.strip())
    if normalized is None:
        raise HTTPException(
            status_code=400,
            detail="Ongeldig Belgisch BTW-nummer. Verwacht formaat: BE gevolgd door 10 cijfers.",
        )

    providers = []
    if settings.CBEAPI_KEY:
        providers.append(("cbeapi", fetch_cbeapi, settings.CBEAPI_KEY))
    if settings.KBO_PARTY_API_KEY:
        providers.append(("kbo.party", fetch_kbo_party, settings.KBO_PARTY_API_KEY))

    if not providers:
        raise HTTPException(
            status_code=503,
            detail="KBO-ophaling is niet geconfigureerd. Stel KBO_PARTY_API_KEY of CBEAPI_KEY in.",
        )

    unreachable = False
    for name, fetch, api_key in providers:
        try:
            result = await fetch(client, normalized, api_key)
        except (httpx.TimeoutException, httpx.TransportError) as e:
            unreachable = True
            await log.log_warning("lookup", f"{name} unreachable", {"vat": normalized, "error": str(e)})
            continue
        except ValueError as e:
            await log.log_warning("lookup", f"{name} returned invalid JSON", {"vat": normalized, "error": str(e)})
            continue
        if result is not None:
            await log.log_info("lookup", "Company found", {"vat": normalized, "provider": name})
            return result

    if unreachable:
        raise HTTPException(
            status_code=503,
            detail="De KBO-dienst is tijdelijk niet bereikbaar (timeout of geen verbinding). Probeer later opnieuw.",
        )
    raise HTTPException(status_code=404, detail="Geen bedrijfsgegevens gevonden voor dit BTW-nummer.")
