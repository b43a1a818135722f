"""
End-to-end tests for the verification pipeline.

Golden IMEIs (computed by hand, cross-checked in test_validators):
- 123456789012345: Luhn sum 68, fails checksum
- 355521621234562: TAC 35552162 (Apple iPhone 14), check digit 2
- 355521621234513: same TAC, check digit 3, ends in "13"
"""

from unittest.mock import MagicMock

import pytest
import requests

from imeicheck import VerificationStatus, verify_imei
from imeicheck.config import ImeiCheckConfig
from imeicheck.detect.tac import KNOWN_TACS_VERSION
from imeicheck.detect.validators import complete_imei
from imeicheck.engine.classifier import AllocationClassifier
from imeicheck.engine.registry import HttpRegistry, RegistryError, SimulatedRegistry
from imeicheck.engine.verifier import ImeiVerifier, VerificationResult, build_verifier
from imeicheck.nl.gemini_client import GeminiClient, OracleReply

CLEAN_IMEI = "355521621234562"
BLACKLISTED_IMEI = "355521621234513"


class CountingOracle:
    def __init__(self, text):
        self.text = text
        self.calls = 0

    def generate_text(self, prompt):
        self.calls += 1
        return OracleReply(text=self.text)


@pytest.fixture
def verifier():
    return ImeiVerifier()


class TestScenarios:

    def test_123456789012345_fails_checksum(self, verifier):
        result = verifier.verify("123456789012345")
        assert result.status is VerificationStatus.invalid_checksum
        assert not result.is_valid
        assert not result.is_blacklisted

    def test_letters_are_invalid_length(self, verifier):
        result = verifier.verify("abc")
        assert result.status is VerificationStatus.invalid_length
        assert not result.is_valid

    def test_seventeen_digits_with_13_suffix_is_invalid_length(self, verifier):
        result = verifier.verify("00000000000000013")
        assert result.status is VerificationStatus.invalid_length
        assert not result.is_blacklisted

    def test_zero_tac_is_fake(self, verifier):
        result = verifier.verify("000000000000000")
        assert result.status is VerificationStatus.fake_tac
        assert not result.is_valid
        assert not result.is_blacklisted

    def test_known_tac_clean(self, verifier):
        result = verifier.verify(CLEAN_IMEI)
        assert result.status is VerificationStatus.clean
        assert result.is_valid
        assert not result.is_blacklisted
        assert result.details.manufacturer == "Apple"
        assert result.details.model == "iPhone 14"
        assert result.details.tac == "35552162"
        assert result.details.recommendation == "Device checks passed"

    def test_known_tac_blacklisted(self, verifier):
        result = verifier.verify(BLACKLISTED_IMEI)
        assert result.status is VerificationStatus.blacklisted
        assert result.is_blacklisted
        assert result.is_valid
        assert result.details.recommendation == "Do not purchase this device"
        assert result.details.warning


@pytest.mark.parametrize("raw", ["", "12345", "3555216212345620", " 355521621234562", "35-5521621234562"])
def test_non_matching_strings_are_invalid_length(verifier, raw):
    result = verifier.verify(raw)
    assert result.status is VerificationStatus.invalid_length
    assert not result.is_valid


def test_fake_tac_wins_over_registry():
    registry = MagicMock(spec=SimulatedRegistry)
    registry.is_blacklisted.return_value = True
    result = ImeiVerifier(registry=registry).verify("111111111111119")
    assert result.status is VerificationStatus.fake_tac
    assert not result.is_blacklisted
    registry.is_blacklisted.assert_not_called()


def test_checksum_failure_skips_later_stages():
    classifier = MagicMock(spec=AllocationClassifier)
    registry = MagicMock(spec=SimulatedRegistry)
    result = ImeiVerifier(classifier, registry).verify("355521621234563")
    assert result.status is VerificationStatus.invalid_checksum
    classifier.classify.assert_not_called()
    registry.is_blacklisted.assert_not_called()


def test_known_tac_makes_zero_oracle_calls():
    oracle = CountingOracle('{"manufacturer": "Other", "model": "Other"}')
    result = ImeiVerifier(AllocationClassifier(oracle)).verify(CLEAN_IMEI)
    assert result.details.manufacturer == "Apple"
    assert result.details.model == "iPhone 14"
    assert oracle.calls == 0


def test_unknown_tac_uses_oracle_identity():
    oracle = CountingOracle('{"manufacturer": "Fairphone", "model": "5"}')
    result = ImeiVerifier(AllocationClassifier(oracle)).verify(complete_imei("35123456000000"))
    assert result.status is VerificationStatus.clean
    assert result.details.manufacturer == "Fairphone"
    assert result.details.model == "5"
    assert result.details.source == "oracle"


def test_unreachable_oracle_degrades_not_fails():
    session = MagicMock()
    session.post.side_effect = requests.ConnectionError("dns")
    oracle = GeminiClient(api_key="k", session=session)
    result = ImeiVerifier(AllocationClassifier(oracle)).verify(complete_imei("42000000000000"))
    assert result.status is VerificationStatus.clean
    assert result.details.manufacturer == "Unknown Manufacturer"
    assert result.details.model is None


def test_registry_error_maps_to_error_status():
    registry = MagicMock(spec=HttpRegistry)
    registry.is_blacklisted.side_effect = RegistryError("down")
    result = ImeiVerifier(registry=registry).verify(CLEAN_IMEI)
    assert result.status is VerificationStatus.error
    assert not result.is_valid
    assert not result.is_blacklisted


def test_verdict_is_idempotent_with_flaky_oracle():
    answers = iter(['{"manufacturer": "A", "model": "1"}', "garbage", '{"manufacturer": "B"}'])

    class FlakyOracle:
        def generate_text(self, prompt):
            return OracleReply(text=next(answers))

    verifier = ImeiVerifier(AllocationClassifier(FlakyOracle()))
    imei = complete_imei("35123456000000")
    verdicts = {
        (r.status, r.is_valid, r.is_blacklisted)
        for r in (verifier.verify(imei) for _ in range(3))
    }
    assert verdicts == {(VerificationStatus.clean, True, False)}


def test_blacklisted_implies_valid_across_inputs(verifier):
    candidates = [complete_imei(f"35{n:012d}") for n in range(0, 2000, 7)]
    candidates += ["123456789012345", "111111111111111", BLACKLISTED_IMEI, "000000000000000"]
    for imei in candidates:
        result = verifier.verify(imei)
        if result.is_blacklisted:
            assert result.is_valid


def test_result_rejects_blacklisted_but_invalid():
    with pytest.raises(ValueError):
        VerificationResult(
            is_valid=False,
            is_blacklisted=True,
            status=VerificationStatus.blacklisted,
            status_detail="",
        )


def test_as_dict_wire_shape(verifier):
    data = verifier.verify(CLEAN_IMEI).as_dict()
    assert data["isValid"] is True
    assert data["isBlacklisted"] is False
    assert data["status"] == "clean"
    assert data["details"]["manufacturer"] == "Apple"
    assert data["details"]["source"] == "known_table"
    assert "warning" not in data["details"]


def test_verify_imei_convenience():
    assert verify_imei(CLEAN_IMEI).status is VerificationStatus.clean
    assert verify_imei(None).status is VerificationStatus.invalid_length  # type: ignore[arg-type]


def test_build_verifier_offline_by_default():
    verifier = build_verifier(ImeiCheckConfig())
    assert verifier.classifier.oracle is None
    assert isinstance(verifier.registry, SimulatedRegistry)


def test_build_verifier_from_config():
    cfg = ImeiCheckConfig(
        oracle={"api_key": "secret", "model": "gemini-test", "timeout_seconds": 2},
        registry={"backend": "http", "url": "https://registry.example/check"},
    )
    verifier = build_verifier(cfg)
    assert isinstance(verifier.classifier.oracle, GeminiClient)
    assert verifier.classifier.oracle.model == "gemini-test"
    assert verifier.classifier.oracle.timeout == 2
    assert isinstance(verifier.registry, HttpRegistry)


def test_known_table_results_carry_table_version(verifier):
    result = verifier.verify(CLEAN_IMEI)
    assert result.details.table_version == KNOWN_TACS_VERSION
    assert result.as_dict()["details"]["tableVersion"] == KNOWN_TACS_VERSION


def test_prefix_results_have_no_table_version(verifier):
    result = verifier.verify(complete_imei("42000000000000"))
    assert result.details.table_version is None
    assert "tableVersion" not in result.as_dict()["details"]
