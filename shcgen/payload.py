"""
SMART Health Card JWS Payload

Builds the claims object (iss, iat, vc) around a trimmed bundle.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from . import config
from .faults import PipelineParameters
from .util import now_epoch_ms


# CVX vaccine codes for COVID-19 vaccines
COVID19_CVX_CODES = frozenset({
    "207", "208", "210", "211", "212", "213", "217", "218", "219",
    "221", "225", "226", "227", "228", "229", "230", "300", "301", "302",
})

CVX_SYSTEM = "http://hl7.org/fhir/sid/cvx"
LOINC_SYSTEM = "http://loinc.org"

# LOINC codes for SARS-CoV-2 lab results
COVID19_LOINC_CODES = frozenset({
    "94309-2", "94500-6", "94558-4", "94531-1", "94759-8", "94845-5",
    "95209-3", "95406-5", "96119-3", "96094-8", "94563-4", "94564-2",
    "94562-6", "94661-6", "94762-2",
})


@dataclass
class CredentialPayload:
    """
    JWS payload of a health card.

    Fields:
    - iss: Issuer URL (no trailing slash when correct)
    - iat: Issuance time in epoch seconds
    - types: vc.type list, "VerifiableCredential" first
    - fhir_bundle: The trimmed bundle, embedded verbatim
    """
    iss: str
    iat: Union[int, float]
    types: List[str]
    fhir_bundle: Dict[str, Any]
    fhir_version: str = config.FHIR_VERSION

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the claims object that gets signed."""
        return {
            "iss": self.iss,
            "iat": self.iat,
            "vc": {
                "type": list(self.types),
                "credentialSubject": {
                    "fhirVersion": self.fhir_version,
                    "fhirBundle": self.fhir_bundle,
                },
            },
        }


def _resources(bundle: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    for entry in bundle.get("entry") or []:
        resource = entry.get("resource") if isinstance(entry, dict) else None
        if isinstance(resource, dict):
            yield resource


def _codings(concept: Any) -> Iterator[Dict[str, Any]]:
    codings = concept.get("coding") if isinstance(concept, dict) else None
    if isinstance(codings, list):
        for coding in codings:
            if isinstance(coding, dict):
                yield coding


def _has_code(concept: Any, system: str, codes: frozenset) -> bool:
    return any(
        c.get("system") == system and c.get("code") in codes
        for c in _codings(concept)
    )


def credential_type_tags(bundle: Dict[str, Any]) -> List[str]:
    """
    Derive the domain-specific vc.type entries from bundle content.

    Returns:
        Zero or more of the immunization, covid19 and laboratory type URIs
    """
    immunizations = [r for r in _resources(bundle) if r.get("resourceType") == "Immunization"]
    observations = [r for r in _resources(bundle) if r.get("resourceType") == "Observation"]

    tags = []
    if immunizations:
        tags.append(config.IMMUNIZATION_URI)
    if observations:
        tags.append(config.LABORATORY_URI)

    covid = any(_has_code(r.get("vaccineCode"), CVX_SYSTEM, COVID19_CVX_CODES) for r in immunizations) \
        or any(_has_code(r.get("code"), LOINC_SYSTEM, COVID19_LOINC_CODES) for r in observations)
    if covid:
        tags.append(config.COVID19_URI)

    return tags


def issued_at(divisor: int, clock: Callable[[], int] = now_epoch_ms) -> Union[int, float]:
    """
    Current time in milliseconds divided by `divisor`.

    Integral results are returned as int so they serialize without ".0".
    """
    value = clock() / divisor
    if value.is_integer():
        return int(value)
    return value


def build_payload(
    fhir_bundle: Dict[str, Any],
    params: Optional[PipelineParameters] = None,
    types: Optional[List[str]] = None,
    issuer_url: str = config.ISSUER_URL,
    clock: Callable[[], int] = now_epoch_ms,
) -> CredentialPayload:
    """
    Build the health card payload for a trimmed bundle.

    Args:
        fhir_bundle: Trimmed bundle
        params: Pipeline parameters (default: correct construction)
        types: Extra vc.type entries contributed by the caller
        issuer_url: Base issuer URL
        clock: Returns the current epoch time in milliseconds

    Returns:
        CredentialPayload instance
    """
    params = params or PipelineParameters()

    return CredentialPayload(
        iss=params.issuer(issuer_url),
        iat=issued_at(params.iat_divisor, clock),
        types=[config.VERIFIABLE_CREDENTIAL_TYPE, params.health_card_uri, *(types or [])],
        fhir_bundle=fhir_bundle,
    )
