"""Tests for per-principal impersonation policy."""

from mirror import Impersonatable, can_be_impersonated, can_impersonate

from tests.helpers import PlainUser, User


class TestImpersonatable:
    def test_defaults_allow_everything(self):
        principal = Impersonatable()

        assert principal.can_impersonate() is True
        assert principal.can_be_impersonated() is True

    def test_overrides_are_independent(self):
        class Auditor(Impersonatable):
            def can_impersonate(self):
                return False

        auditor = Auditor()

        assert can_impersonate(auditor) is False
        assert can_be_impersonated(auditor) is True


class TestPolicyChecks:
    def test_principal_without_methods_is_permitted(self):
        plain = PlainUser(3, "plain@example.com")

        assert can_impersonate(plain) is True
        assert can_be_impersonated(plain) is True

    def test_none_is_never_permitted(self):
        assert can_impersonate(None) is False
        assert can_be_impersonated(None) is False

    def test_evaluated_per_principal(self):
        """Different principals answer for themselves."""
        staff = User(1, "staff@example.com")
        locked = User(2, "locked@example.com", may_be_impersonated=False)

        assert can_be_impersonated(staff) is True
        assert can_be_impersonated(locked) is False

    def test_evaluated_on_every_call(self):
        user = User(1, "u@example.com")
        assert can_impersonate(user) is True

        user.may_impersonate = False

        assert can_impersonate(user) is False

    def test_truthy_results_are_coerced(self):
        class Loose:
            id = 9

            def can_impersonate(self):
                return "yes"

            def can_be_impersonated(self):
                return 0

        assert can_impersonate(Loose()) is True
        assert can_be_impersonated(Loose()) is False
