"""
Adversarial tests for email code and DNS token guessing.

Verifies that a claimant cannot verify an email claim without the code
that was actually delivered, and cannot pass a DNS check with a token
that merely resembles the stored one.

Security rationale:
- Codes are 6 digits drawn from a CSPRNG; a stale code is useless after
  15 minutes and after every resend
- Code comparison runs through secrets.compare_digest on every path,
  including claims whose code was already consumed
- DNS matching is exact: prefixes, substrings and case variants fail
"""

from unittest.mock import Mock, patch

import pytest

from src.domain.claim_verification import ClaimVerificationService
from src.domain.claims import DnsProof, EmailProof, VerificationStatus
from src.domain.exceptions import CodeExpired, InvalidCode, NoPendingClaim, TokenNotFound

pytestmark = pytest.mark.adversarial


@pytest.fixture
def verifier(claim_repository, clock) -> ClaimVerificationService:
    return ClaimVerificationService(repository=claim_repository, resolver=Mock(), clock=clock)


class TestEmailCodeGuessing:
    @pytest.fixture
    def code(self, claim_service) -> str:
        claim = claim_service.initiate_claim(
            "business-1", "attacker", EmailProof("owner@example.com")
        )
        return claim.otp_code

    def test_guessing_never_verifies(self, verifier, claim_repository, code) -> None:
        """A run of wrong guesses leaves the claim unverified."""
        guesses = [f"{n:06d}" for n in range(100000, 100200) if f"{n:06d}" != code]
        for guess in guesses:
            with pytest.raises(InvalidCode):
                verifier.verify("business-1", "attacker", guess)

        stored = claim_repository.find_pending_claim("business-1", "attacker")
        assert stored.verification_status == VerificationStatus.PENDING

    @pytest.mark.parametrize(
        "mangle", [lambda c: c[:-1], lambda c: c + "0", lambda c: c[:-1] + "x", lambda c: ""]
    )
    def test_near_misses_fail(self, verifier, code, mangle) -> None:
        with pytest.raises(InvalidCode):
            verifier.verify("business-1", "attacker", mangle(code))

    def test_code_from_another_claim_fails(self, claim_service, verifier, code) -> None:
        other = claim_service.initiate_claim(
            "business-2", "attacker", EmailProof("owner@example.com")
        )
        if other.otp_code == code:
            pytest.skip("both claims drew the same code")

        with pytest.raises(InvalidCode):
            verifier.verify("business-1", "attacker", other.otp_code)

    def test_expired_code_fails_even_when_correct(self, verifier, clock, code) -> None:
        clock.advance(minutes=15, seconds=1)
        with pytest.raises(CodeExpired):
            verifier.verify("business-1", "attacker", code)

    def test_other_claimant_cannot_use_the_code(self, verifier, code) -> None:
        with pytest.raises(NoPendingClaim):
            verifier.verify("business-1", "someone-else", code)

    def test_comparison_is_constant_time(self, verifier, code) -> None:
        with patch(
            "src.domain.verifiers.secrets.compare_digest", return_value=False
        ) as compare:
            with pytest.raises(InvalidCode):
                verifier.verify("business-1", "attacker", code)

        compare.assert_called_once_with(code.encode(), code.encode())


class TestDnsTokenGuessing:
    @pytest.fixture
    def token(self, claim_service) -> str:
        claim = claim_service.initiate_claim("business-1", "attacker", DnsProof("example.com"))
        return claim.verification_token

    @pytest.mark.parametrize(
        "published",
        [
            lambda t: t[:-1],
            lambda t: t.upper(),
            lambda t: f"x{t}",
            lambda t: "verify=",
        ],
    )
    def test_lookalike_tokens_fail(self, verifier, token, published) -> None:
        verifier.resolver.resolve_txt.return_value = [[published(token)]]
        with pytest.raises(TokenNotFound):
            verifier.verify("business-1", "attacker")

    def test_another_claims_token_fails(self, claim_service, verifier, token) -> None:
        other = claim_service.initiate_claim("business-2", "attacker", DnsProof("example.com"))
        verifier.resolver.resolve_txt.return_value = [[other.verification_token]]

        with pytest.raises(TokenNotFound):
            verifier.verify("business-1", "attacker")
