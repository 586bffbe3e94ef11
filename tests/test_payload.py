"""
Payload builder tests.
"""

import unittest

from shcgen import build_payload, credential_type_tags, resolve_parameters, serialize_str, trim_bundle
from shcgen import config

from bundle_fixtures import LAB_BUNDLE, fixed_clock, load_example

ISSUER = "https://smarthealth.cards/examples/issuer"


def payload_for(case=None, clock=fixed_clock, types=None):
    params = resolve_parameters(case)
    bundle = trim_bundle(load_example())
    return build_payload(bundle, params, types, issuer_url=ISSUER, clock=clock)


class TestClaims(unittest.TestCase):

    def test_claim_structure(self):
        claims = payload_for().to_dict()

        self.assertEqual(list(claims), ["iss", "iat", "vc"])
        self.assertEqual(claims["iss"], ISSUER)
        subject = claims["vc"]["credentialSubject"]
        self.assertEqual(subject["fhirVersion"], "4.0.1")
        self.assertEqual(subject["fhirBundle"]["entry"][0]["fullUrl"], "resource:0")

    def test_iat_in_fractional_seconds(self):
        self.assertEqual(payload_for().iat, 1617278400.123)
        self.assertIn('"iat":1617278400.123,', serialize_str(payload_for().to_dict()))

    def test_whole_second_iat_serializes_as_integer(self):
        payload = payload_for(clock=lambda: 1617278400000)
        self.assertEqual(payload.iat, 1617278400)
        self.assertIsInstance(payload.iat, int)

    def test_iat_milliseconds_fault(self):
        payload = payload_for("iat_milliseconds")
        self.assertEqual(payload.iat, 1617278400123)

    def test_types(self):
        tags = [config.IMMUNIZATION_URI, config.COVID19_URI]
        payload = payload_for(types=tags)
        self.assertEqual(payload.types, ["VerifiableCredential", config.HEALTH_CARD_URI, *tags])

    def test_invalid_health_card_uri_fault(self):
        payload = payload_for("invalid_healthcard_uri")
        self.assertEqual(payload.types, ["VerifiableCredential", config.WRONG_HEALTH_CARD_URI])


class TestIssuerFaults(unittest.TestCase):

    def test_invalid_suffix(self):
        self.assertEqual(payload_for("invalid_issuer_url").iss, ISSUER + "invalid_url")

    def test_wrong_scheme(self):
        self.assertEqual(payload_for("issuer_url_http").iss, "http://smarthealth.cards/examples/issuer")

    def test_trailing_slash(self):
        self.assertEqual(payload_for("issuer_url_trailing_slash").iss, ISSUER + "/")


class TestTypeTags(unittest.TestCase):

    def test_immunization_bundle(self):
        tags = credential_type_tags(trim_bundle(load_example()))
        self.assertEqual(tags, [config.IMMUNIZATION_URI, config.COVID19_URI])

    def test_lab_bundle(self):
        tags = credential_type_tags(trim_bundle(load_example(LAB_BUNDLE)))
        self.assertEqual(tags, [config.LABORATORY_URI, config.COVID19_URI])

    def test_malformed_coding_ignored(self):
        bundle = {"resourceType": "Bundle", "entry": [
            {"resource": {"resourceType": "Immunization", "vaccineCode": {"coding": 5}}},
        ]}
        self.assertEqual(credential_type_tags(bundle), [config.IMMUNIZATION_URI])

    def test_no_tags(self):
        bundle = {"resourceType": "Bundle", "entry": [{"resource": {"resourceType": "Patient"}}]}
        self.assertEqual(credential_type_tags(bundle), [])


if __name__ == "__main__":
    unittest.main()
