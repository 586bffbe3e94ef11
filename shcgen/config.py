"""
Configuration module for the SMART Health Card generator.

Centralizes configuration with environment variable support and
validation of the key material layout.
"""

import os
from pathlib import Path
from typing import Dict

# ============================================================
# Environment Configuration
# ============================================================

ISSUER_URL = os.getenv("SHC_ISSUER_URL", "https://smarthealth.cards/examples/issuer")

# Paths
KEY_DIR = os.getenv("SHC_KEY_DIR", "config/keys")
OUTPUT_DIR = os.getenv("SHC_OUTPUT_DIR", "out")

# Logging
LOG_LEVEL = os.getenv("SHC_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("SHC_LOG_JSON", "true").lower() in ("1", "true", "yes")

# Issuer index into the selected key set
ISSUER_INDEX = int(os.getenv("SHC_ISSUER_INDEX", "0"))


# ============================================================
# Wire Constants
# ============================================================

QR_HEADER = "shc:/"

# Largest JWS that fits a single version 22 QR code at error correction L
MAX_SINGLE_JWS_SIZE = 1195
MAX_CHUNK_SIZE = 1191

# Real capacity of a version 40 L code for a numeric payload, in JWS characters
INFLATED_JWS_SIZE = 3500

# Lowest code point in the base64url alphabet ("-")
SMALLEST_B64_CHAR_CODE = 45

FHIR_VERSION = "4.0.1"
VERIFIABLE_CREDENTIAL_TYPE = "VerifiableCredential"
HEALTH_CARD_URI = "https://smarthealth.cards#health-card"
WRONG_HEALTH_CARD_URI = "https://smarthealth.cards#wrong-health-card"
IMMUNIZATION_URI = "https://smarthealth.cards#immunization"
COVID19_URI = "https://smarthealth.cards#covid19"
LABORATORY_URI = "https://smarthealth.cards#laboratory"


# ============================================================
# Key Files
# ============================================================

ISSUER_KEY_FILE = "issuer.jwks.private.json"
SECOND_ISSUER_KEY_FILE = "issuer2.jwks.private.json"
WRONG_CURVE_KEY_FILE = "issuer_wrong_curve.jwks.private.json"
WRONG_KID_KEY_FILE = "issuer_wrong_kid.jwks.private.json"
WRONG_KTY_KEY_FILE = "issuer_wrong_kty.jwks.private.json"

KEY_FILES = (
    ISSUER_KEY_FILE,
    SECOND_ISSUER_KEY_FILE,
    WRONG_CURVE_KEY_FILE,
    WRONG_KID_KEY_FILE,
    WRONG_KTY_KEY_FILE,
)


def public_key_file(private_file: str) -> str:
    """Name of the public JWKS written next to a private one."""
    return private_file.replace(".private.json", ".public.json")


# ============================================================
# Validation
# ============================================================

def validate_config(key_dir: str = KEY_DIR) -> Dict[str, bool]:
    """
    Validate that all signing key files exist.
    Returns dict of file name -> exists.
    """
    return {name: (Path(key_dir) / name).exists() for name in KEY_FILES}
