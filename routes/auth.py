from flask import Blueprint, request, jsonify, g
from sqlalchemy.exc import IntegrityError

from models import db
from models.one_time_code import PURPOSE_VERIFY_EMAIL, PURPOSE_PASSWORD_RESET
from repositories import get_repositories
from security import one_time_codes
from security.bruteforce import is_blocked, register_failure, reset_attempts, clear_all_attempts, lock_account
from security.csrf import issue_csrf_token, new_csrf_token, set_csrf_cookie
from security.password import hash_password, verify_password
from security.rate_limit import client_ip, throttle_login_requests
from security.tokens import get_token_store
from utils.audit import log_event
from utils.auth_context import login_required, set_auth_cookie, clear_auth_cookie
from utils.emailer import send_verification_code, send_password_reset
from utils.errors import ApiException, Conflict, Forbidden, RateLimited, Unauthorized, ValidationError
from utils.seed import DEFAULT_ROLE
from utils.validation import parse_body
from validations.auth import (
    ChangePasswordRequest,
    CodeRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
)


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

FORGOT_PASSWORD_MESSAGE = "Password reset request has been processed successfully."


def _client():
    return client_ip(), request.headers.get("User-Agent")


def _session_response(user, token: str, message: str, status: int, **extra):
    resp = jsonify(success=True, message=message, data={"user": user.public(), "token": token, **extra})
    set_auth_cookie(resp, token)
    issue_csrf_token(resp)
    return resp, status


@auth_bp.post("/register")
def register():
    body = parse_body(RegisterRequest)
    repos = get_repositories()

    if repos.users.find_by_email(body.email):
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": body.email})
        raise Conflict("User already exists")

    try:
        user = repos.users.create(body.name, body.email, hash_password(body.password), role_name=DEFAULT_ROLE)
    except IntegrityError:
        db.session.rollback()
        raise Conflict("User already exists")

    record, code = one_time_codes.issue(user, PURPOSE_VERIFY_EMAIL)
    send_verification_code(user.email, code, record.id)

    ip, user_agent = _client()
    token = get_token_store().issue(user, ip=ip, user_agent=user_agent)

    log_event("REGISTER_SUCCESS", user_id=user.id, entity="user", entity_id=user.id)
    return _session_response(user, token, "User created", 201, verificationId=record.id)


@auth_bp.post("/login")
def login():
    throttle_login_requests()
    body = parse_body(LoginRequest)
    repos = get_repositories()

    if is_blocked(body.email):
        locked_now = lock_account(body.email)
        log_event("LOGIN_LOCKOUT", metadata={"email": body.email, "locked_now": locked_now})
        raise RateLimited(
            "Too many login attempts, your account has been temporarily disabled.",
            data={"disabled": True},
        )

    user = repos.users.find_by_email(body.email)
    if not user or not verify_password(body.password, repos.users.get_password_hash(user.id)):
        fail_count = register_failure(body.email)
        log_event(
            "LOGIN_FAIL",
            user_id=user.id if user else None,
            metadata={"email": body.email, "fail_count": fail_count},
        )
        raise Unauthorized("Invalid email or password")

    if user.disabled:
        log_event("LOGIN_FAIL_DISABLED", user_id=user.id)
        raise Forbidden("Your account is disabled. Please reset your password to continue.")

    reset_attempts(body.email)

    ip, user_agent = _client()
    token = get_token_store().issue(user, ip=ip, user_agent=user_agent)

    log_event("LOGIN_SUCCESS", user_id=user.id)
    return _session_response(user, token, "User logged in", 200)


@auth_bp.get("/csrf")
def csrf_token():
    token = new_csrf_token()
    resp = jsonify(success=True, message="CSRF token issued", data={"token": token})
    set_csrf_cookie(resp, token)
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(success=True, data={"user": g.user.public(), "session": g.session.public()}), 200


@auth_bp.get("/verify/<code_id>")
def check_verification(code_id):
    one_time_codes.peek(code_id, PURPOSE_VERIFY_EMAIL)
    return jsonify(success=True, message="Verification code is valid"), 200


@auth_bp.post("/verify/<code_id>")
def verify_email(code_id):
    body = parse_body(CodeRequest)
    record = one_time_codes.redeem(code_id, body.code, PURPOSE_VERIFY_EMAIL)

    user = get_repositories().users.update(record.user_id, is_verified=True)
    log_event("EMAIL_VERIFIED", user_id=record.user_id)
    return jsonify(success=True, message="Email verified", data={"user": user.public() if user else None}), 200


@auth_bp.put("/verify/regenerate")
@login_required
def regenerate_verification():
    if g.user.is_verified:
        raise ApiException("User is already verified", 400)

    record, code = one_time_codes.issue(g.user, PURPOSE_VERIFY_EMAIL)
    send_verification_code(g.user.email, code, record.id)
    return jsonify(success=True, message="Verification code sent", data={"verificationId": record.id}), 200


@auth_bp.post("/forgot-password")
def forgot_password():
    body = parse_body(ForgotPasswordRequest)

    # identical answer whether or not the account exists
    user = get_repositories().users.find_by_email(body.email)
    if user:
        record, code = one_time_codes.issue(user, PURPOSE_PASSWORD_RESET)
        send_password_reset(user.email, user.name, code, record.id)
        log_event("PASSWORD_RESET_REQUEST", user_id=user.id)

    return jsonify(success=True, message=FORGOT_PASSWORD_MESSAGE), 200


@auth_bp.get("/forgot-password/<code_id>")
def get_reset_password_email(code_id):
    record = one_time_codes.peek(code_id, PURPOSE_PASSWORD_RESET)
    user = get_repositories().users.get(record.user_id)
    if user is None:
        raise ApiException("Password reset token is invalid or expired", 404)
    return jsonify(success=True, data={"email": user.email}), 200


@auth_bp.post("/forgot-password/<code_id>")
def reset_password(code_id):
    body = parse_body(ResetPasswordRequest)
    record = one_time_codes.redeem(code_id, body.code, PURPOSE_PASSWORD_RESET)

    user = get_repositories().users.set_password(record.user_id, hash_password(body.password), enable=True)
    if user is None:
        raise ApiException("Password reset token is invalid or expired", 404)

    clear_all_attempts(user.email)
    revoked = get_token_store().revoke_all(user)

    log_event("PASSWORD_RESET", user_id=user.id, metadata={"revoked_sessions": revoked})
    resp = jsonify(success=True, message="Password reset successful. Please login to your account.")
    clear_auth_cookie(resp)
    return resp, 200


@auth_bp.post("/change-password")
@login_required
def change_password():
    body = parse_body(ChangePasswordRequest)
    repos = get_repositories()

    if not verify_password(body.current_password, repos.users.get_password_hash(g.user.id)):
        raise ValidationError({"currentPassword": ["Current password is incorrect"]})

    repos.users.set_password(g.user.id, hash_password(body.password))
    revoked = get_token_store().revoke_all(g.user, keep=g.session.id)

    log_event("PASSWORD_CHANGED", user_id=g.user.id, metadata={"revoked_sessions": revoked})
    return jsonify(success=True, message="Password updated", data={"revokedSessions": revoked}), 200


@auth_bp.post("/logout")
@login_required
def logout():
    get_token_store().revoke(g.session.id, g.user)
    log_event("LOGOUT", user_id=g.user.id, entity="user_token", entity_id=g.session.id)

    resp = jsonify(success=True, message="User logged out")
    clear_auth_cookie(resp)
    return resp, 200


@auth_bp.post("/logout/all")
@login_required
def logout_all():
    count = get_token_store().revoke_all(g.user)
    log_event("LOGOUT_ALL", user_id=g.user.id, metadata={"revoked_sessions": count})

    resp = jsonify(success=True, message="User logged out from all devices", data={"revokedSessions": count})
    clear_auth_cookie(resp)
    return resp, 200


@auth_bp.post("/logout/<token_id>")
@login_required
def logout_device(token_id):
    revoked = get_token_store().revoke(token_id, g.user)
    if revoked:
        log_event("LOGOUT_DEVICE", user_id=g.user.id, entity="user_token", entity_id=token_id)

    resp = jsonify(success=True, message="User logged out from device")
    if token_id == g.session.id:
        clear_auth_cookie(resp)
    return resp, 200
