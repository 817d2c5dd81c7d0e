import string
from datetime import timedelta

import pytest

from app.core.dates import as_utc, utcnow
from app.core.exceptions import AuthError, ConflictError, NotFoundError, ValidationError
from app.domain.models.notification_log import NotificationLog
from app.domain.models.user import Role
from factories import DEFAULT_PASSWORD

EMAIL = "traveller@example.com"
PHONE = "+6281234567900"


def register(services, email=EMAIL, phone=PHONE, role=Role.TOURIST):
    return services.auth.register(email, DEFAULT_PASSWORD, phone, role)


class TestRegister:
    def test_creates_unverified_user_with_otp(self, services, db, settings):
        before = utcnow()
        user = register(services)

        assert user.is_verified is False
        assert user.role == Role.TOURIST
        assert len(user.otp_token) == settings.OTP_LENGTH
        assert set(user.otp_token) <= set(string.ascii_uppercase + string.digits)
        expiry = as_utc(user.otp_expiry)
        assert before + timedelta(minutes=9) < expiry <= utcnow() + timedelta(minutes=10)
        assert user.password_hash != DEFAULT_PASSWORD

        entries = db.query(NotificationLog).all()
        assert len(entries) == 1
        assert entries[0].destination == EMAIL
        assert user.otp_token in entries[0].message

    def test_email_is_normalized(self, services):
        user = register(services, email="  Traveller@Example.COM ")
        assert user.email == EMAIL

    def test_duplicate_email_conflicts(self, services):
        register(services)
        with pytest.raises(ConflictError) as exc:
            register(services, email=EMAIL.upper(), phone="+6280000000001")
        assert exc.value.validation_errors[0]["field"] == "email"

    def test_duplicate_phone_conflicts(self, services):
        register(services)
        with pytest.raises(ConflictError) as exc:
            register(services, email="other@example.com", phone=f" {PHONE} ")
        assert exc.value.validation_errors[0]["field"] == "phone"

    def test_blank_phone_rejected(self, services):
        with pytest.raises(ValidationError):
            register(services, phone="   ")

    def test_owner_is_auto_verified(self, services, db):
        owner = services.auth.register_owner("boss@example.com", DEFAULT_PASSWORD, "+6280000000002")

        assert owner.role == Role.OWNER
        assert owner.is_verified is True
        assert owner.otp_token is None
        assert db.query(NotificationLog).count() == 0

    def test_owner_gets_otp_when_auto_verify_disabled(self, services, settings):
        services.auth.settings = settings.model_copy(update={"OWNER_AUTO_VERIFY": False})
        owner = services.auth.register_owner("boss@example.com", DEFAULT_PASSWORD, "+6280000000002")

        assert owner.is_verified is False
        assert owner.otp_token

    def test_ensure_owner_is_idempotent(self, services):
        assert services.auth.ensure_owner("boss@example.com", DEFAULT_PASSWORD, "+6280000000002") is not None
        assert services.auth.ensure_owner("boss@example.com", DEFAULT_PASSWORD, "+6280000000002") is None


class TestVerifyOtp:
    def test_verify_with_lowercase_code(self, services):
        user = register(services)
        verified = services.auth.verify_otp(EMAIL, f" {user.otp_token.lower()} ")

        assert verified.is_verified is True
        assert verified.otp_token is None
        assert verified.otp_expiry is None

    def test_wrong_code(self, services):
        register(services)
        with pytest.raises(AuthError):
            services.auth.verify_otp(EMAIL, "000000")

    def test_unknown_email(self, services):
        with pytest.raises(AuthError):
            services.auth.verify_otp("nobody@example.com", "ABC123")

    def test_already_verified(self, services):
        user = register(services)
        otp = user.otp_token
        services.auth.verify_otp(EMAIL, otp)

        with pytest.raises(ValidationError):
            services.auth.verify_otp(EMAIL, otp)

    def test_expired_code(self, services, make_services):
        user = register(services)
        later = make_services(clock=lambda: utcnow() + timedelta(minutes=11))

        with pytest.raises(AuthError):
            later.auth.verify_otp(EMAIL, user.otp_token)

    def test_code_valid_inside_window(self, services, make_services):
        user = register(services)
        soon = make_services(clock=lambda: utcnow() + timedelta(minutes=9))

        assert soon.auth.verify_otp(EMAIL, user.otp_token).is_verified is True

    def test_resend_replaces_code(self, services, db, monkeypatch):
        # the generator repeats the old code once before producing a new one
        codes = iter(["AAAAAA", "AAAAAA", "BBBBBB"])
        monkeypatch.setattr(services.auth, "generate_otp", lambda: next(codes))
        user = register(services)
        assert user.otp_token == "AAAAAA"

        services.auth.resend_otp(EMAIL)
        db.refresh(user)

        assert user.otp_token == "BBBBBB"
        assert db.query(NotificationLog).count() == 2
        with pytest.raises(AuthError):
            services.auth.verify_otp(EMAIL, "AAAAAA")
        assert services.auth.verify_otp(EMAIL, "BBBBBB").is_verified is True

    def test_resend_for_unknown_or_verified(self, services):
        with pytest.raises(ValidationError):
            services.auth.resend_otp("nobody@example.com")

        user = register(services)
        services.auth.verify_otp(EMAIL, user.otp_token)
        with pytest.raises(ValidationError):
            services.auth.resend_otp(EMAIL)


class TestLogin:
    def test_unknown_email_and_wrong_password_look_the_same(self, services, create_user):
        create_user(Role.TOURIST, email=EMAIL)

        with pytest.raises(AuthError) as unknown:
            services.auth.login("nobody@example.com", DEFAULT_PASSWORD)
        with pytest.raises(AuthError) as wrong:
            services.auth.login(EMAIL, "not-the-password")

        assert unknown.value.message == wrong.value.message

    def test_unverified_user_gets_distinct_message(self, services, create_user):
        create_user(Role.TOURIST, email=EMAIL, verified=False)

        with pytest.raises(AuthError) as exc:
            services.auth.login(EMAIL, DEFAULT_PASSWORD)

        with pytest.raises(AuthError) as wrong:
            services.auth.login("nobody@example.com", DEFAULT_PASSWORD)
        assert exc.value.message != wrong.value.message
        assert "verify" in exc.value.message.lower()

    def test_login_issues_tokens(self, services, settings, create_user):
        user = create_user(Role.STAFF, email=EMAIL)

        result = services.auth.login(EMAIL, DEFAULT_PASSWORD)

        assert result["token_type"] == "bearer"
        assert result["expires_in"] == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        assert result["refresh_expires_in"] == settings.REFRESH_TOKEN_EXPIRE_DAYS * 86400
        assert result["user"].id == user.id

        claims = services.tokens.decode_access_token(result["access_token"])
        assert claims["sub"] == str(user.id)
        assert claims["role"] == "staff"
        assert services.auth.authenticate(result["access_token"]).id == user.id

    def test_registration_to_login_flow(self, services):
        user = register(services)
        with pytest.raises(AuthError):
            services.auth.login(EMAIL, DEFAULT_PASSWORD)

        services.auth.verify_otp(EMAIL, user.otp_token)

        assert services.auth.login(EMAIL, DEFAULT_PASSWORD)["access_token"]


class TestRefreshAndLogout:
    def test_refresh_issues_new_access_token(self, services, create_user):
        user = create_user(Role.TOURIST, email=EMAIL)
        tokens = services.auth.login(EMAIL, DEFAULT_PASSWORD)

        refreshed = services.auth.refresh_access_token(tokens["refresh_token"], user.id)

        assert refreshed["access_token"] != tokens["access_token"]
        assert "refresh_token" not in refreshed
        assert services.auth.authenticate(refreshed["access_token"]).id == user.id

    def test_access_token_cannot_refresh(self, services, create_user):
        create_user(Role.TOURIST, email=EMAIL)
        tokens = services.auth.login(EMAIL, DEFAULT_PASSWORD)

        with pytest.raises(AuthError):
            services.auth.refresh_access_token(tokens["access_token"])

    def test_refresh_token_cannot_authenticate(self, services, create_user):
        create_user(Role.TOURIST, email=EMAIL)
        tokens = services.auth.login(EMAIL, DEFAULT_PASSWORD)

        with pytest.raises(AuthError):
            services.auth.authenticate(tokens["refresh_token"])

    def test_refresh_with_wrong_user_id(self, services, create_user):
        user = create_user(Role.TOURIST, email=EMAIL)
        tokens = services.auth.login(EMAIL, DEFAULT_PASSWORD)

        with pytest.raises(AuthError):
            services.auth.refresh_access_token(tokens["refresh_token"], user.id + 1)

    def test_logout_kills_refresh_token(self, services, create_user):
        user = create_user(Role.TOURIST, email=EMAIL)
        tokens = services.auth.login(EMAIL, DEFAULT_PASSWORD)

        services.auth.logout(user.id)

        with pytest.raises(AuthError):
            services.auth.refresh_access_token(tokens["refresh_token"])

    def test_new_login_replaces_previous_session(self, services, create_user):
        create_user(Role.TOURIST, email=EMAIL)
        first = services.auth.login(EMAIL, DEFAULT_PASSWORD)
        second = services.auth.login(EMAIL, DEFAULT_PASSWORD)

        with pytest.raises(AuthError):
            services.auth.refresh_access_token(first["refresh_token"])
        assert services.auth.refresh_access_token(second["refresh_token"])["access_token"]

    def test_expired_refresh_token(self, services, make_services, create_user):
        create_user(Role.TOURIST, email=EMAIL)
        tokens = services.auth.login(EMAIL, DEFAULT_PASSWORD)
        later = make_services(clock=lambda: utcnow() + timedelta(days=8))

        with pytest.raises(AuthError):
            later.auth.refresh_access_token(tokens["refresh_token"])

    def test_logout_unknown_user(self, services):
        with pytest.raises(NotFoundError):
            services.auth.logout(999)

    def test_profile(self, services, create_user):
        user = create_user(Role.TOURIST, email=EMAIL)
        assert services.auth.get_profile(user.id).email == EMAIL
