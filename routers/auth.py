import html
import re
import secrets
from time import time

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

import remote
from config import SESSION_COOKIE_NAME, RESET_TOKEN_TTL_SECONDS, USER_TYPES, _utc_now_storage
from db import get_db
from security import (
    _hash_password,
    _verify_password,
    _set_session_cookie,
    _get_authenticated_user,
    _home_for,
    _send_reset_email,
    _is_login_allowed,
    _is_reset_allowed,
)
from ui import PAGE_STYLE, _banners

router = APIRouter()

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MAX_NAME_LEN = 120
MAX_MESSAGE_LEN = 5000


def _user_type_options(selected: str) -> str:
    return "".join(
        f'<option value="{t}"{" selected" if t == selected else ""}>{t.title()}</option>'
        for t in USER_TYPES
    )


@router.get("/", response_class=HTMLResponse)
def landing(request: Request, sent: int = 0, error: str = ""):
    user = _get_authenticated_user(request)
    if user:
        return RedirectResponse(url=_home_for(user["user_type"]), status_code=303)
    banner = _banners(error, "Thanks for reaching out! We'll get back to you soon." if sent else "")
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Health Portal</title></head>
<body>
  <div class="container">
    <h1>Health Portal</h1>
    <p class="meta">Cancer-risk self assessment, appointments with your doctor, personalised diet plans
      and a supportive community.</p>
    <p>
      <a class="btn-primary" style="text-decoration:none;display:inline-block;" href="/login">Log In</a>
      <a class="btn-small" style="text-decoration:none;display:inline-block;margin-left:8px;" href="/signup">Create an account</a>
    </p>
    <div class="card">
      <h2>Contact us</h2>
      {banner}
      <form method="post" action="/contact">
        <div class="form-group"><label for="name">Name</label>
          <input type="text" id="name" name="name" required></div>
        <div class="form-group"><label for="email">Email</label>
          <input type="email" id="email" name="email" required></div>
        <div class="form-group"><label for="subject">Subject</label>
          <input type="text" id="subject" name="subject" required></div>
        <div class="form-group"><label for="message">Message</label>
          <textarea id="message" name="message" rows="4" required></textarea></div>
        <div class="form-group"><label for="user_type">I am a</label>
          <select id="user_type" name="user_type">{_user_type_options("patient")}</select></div>
        <button type="submit" class="btn-primary">Send Message</button>
      </form>
    </div>
  </div>
</body>
</html>
"""


@router.post("/contact")
def contact_post(
    name: str = Form(""),
    email: str = Form(""),
    subject: str = Form(""),
    message: str = Form(""),
    user_type: str = Form("patient"),
):
    if not (name.strip() and email.strip() and subject.strip() and message.strip()):
        return RedirectResponse(url="/?error=Please+fill+in+all+fields", status_code=303)
    if not EMAIL_RE.match(email.strip()):
        return RedirectResponse(url="/?error=Please+enter+a+valid+email", status_code=303)
    if len(message.strip()) > MAX_MESSAGE_LEN:
        return RedirectResponse(url="/?error=Message+is+too+long", status_code=303)
    if user_type not in USER_TYPES:
        user_type = "patient"
    with get_db() as conn:
        conn.execute(
            "INSERT INTO contact_messages (name, email, subject, message, user_type, created_at)"
            " VALUES (?, ?, ?, ?, ?, ?)",
            (name.strip(), email.strip().lower(), subject.strip(), message.strip(), user_type,
             _utc_now_storage()),
        )
        conn.commit()
    return RedirectResponse(url="/?sent=1", status_code=303)


@router.get("/signup", response_class=HTMLResponse)
def signup_get(error: str = "", user_type: str = "patient"):
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Create Account</title></head>
<body>
  <div class="container">
    <h1>Create Your Account</h1>
    {_banners(error)}
    <form method="post" action="/signup">
      <div class="form-group"><label for="user_type">Account type</label>
        <select id="user_type" name="user_type">{_user_type_options(user_type)}</select></div>
      <div class="form-group"><label for="name">Full name</label>
        <input type="text" id="name" name="name" required autocomplete="name"></div>
      <div class="form-group"><label for="email">Email</label>
        <input type="email" id="email" name="email" required autocomplete="email"></div>
      <div class="form-group"><label for="new_password">Password</label>
        <input type="password" id="new_password" name="new_password"
          placeholder="At least 8 characters" required autocomplete="new-password"></div>
      <div class="form-group"><label for="confirm_password">Confirm Password</label>
        <input type="password" id="confirm_password" name="confirm_password"
          required autocomplete="new-password"></div>
      <div class="form-group"><label for="specialization">Specialization <span class="meta">(doctors)</span></label>
        <input type="text" id="specialization" name="specialization" placeholder="e.g. Oncology"></div>
      <div class="form-group"><label for="medical_license">Medical license <span class="meta">(doctors)</span></label>
        <input type="text" id="medical_license" name="medical_license"></div>
      <button type="submit" class="btn-primary">Create Account</button>
    </form>
    <p class="meta" style="margin-top:16px;">Already registered? <a href="/login">Log in</a></p>
  </div>
</body>
</html>
"""


@router.post("/signup")
def signup_post(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    new_password: str = Form(""),
    confirm_password: str = Form(""),
    user_type: str = Form("patient"),
    specialization: str = Form(""),
    medical_license: str = Form(""),
):
    email = email.strip().lower()
    if not name.strip() or not email:
        return RedirectResponse(url="/signup?error=Please+fill+in+all+fields", status_code=303)
    if len(name.strip()) > MAX_NAME_LEN:
        return RedirectResponse(url="/signup?error=Name+is+too+long", status_code=303)
    if not EMAIL_RE.match(email):
        return RedirectResponse(url="/signup?error=Please+enter+a+valid+email", status_code=303)
    if user_type not in USER_TYPES:
        return RedirectResponse(url="/signup?error=Unknown+account+type", status_code=303)
    if len(new_password) < 8:
        return RedirectResponse(url="/signup?error=Password+must+be+at+least+8+characters", status_code=303)
    if new_password != confirm_password:
        return RedirectResponse(url="/signup?error=Passwords+do+not+match", status_code=303)
    with get_db() as conn:
        existing = conn.execute("SELECT 1 FROM users WHERE email = ?", (email,)).fetchone()
    if existing:
        return RedirectResponse(url="/signup?error=User+with+this+email+already+exists", status_code=303)
    is_doctor = user_type == "doctor"
    user = {
        "name": name.strip(),
        "email": email,
        "password_hash": _hash_password(new_password),
        "user_type": user_type,
        "specialization": specialization.strip() if is_doctor else "",
        "medical_license": medical_license.strip() if is_doctor else "",
        "is_verified": 1 if is_doctor else 0,
    }
    try:
        remote.insert_user(user)
    except remote.RemoteDuplicateError:
        return RedirectResponse(url="/signup?error=User+with+this+email+already+exists", status_code=303)
    now = _utc_now_storage()
    with get_db() as conn:
        cur = conn.execute(
            "INSERT INTO users (name, email, password_hash, user_type, specialization,"
            " medical_license, is_verified, created_at, updated_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (user["name"], email, user["password_hash"], user_type, user["specialization"],
             user["medical_license"], user["is_verified"], now, now),
        )
        conn.commit()
        user_id = cur.lastrowid
    resp = RedirectResponse(url=_home_for(user_type), status_code=303)
    _set_session_cookie(resp, request, user_id, user["password_hash"])
    return resp


@router.get("/login", response_class=HTMLResponse)
def login_get(request: Request, error: str = "", success: str = ""):
    user = _get_authenticated_user(request)
    if user:
        return RedirectResponse(url=_home_for(user["user_type"]), status_code=303)
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Log In</title></head>
<body>
  <div class="container">
    <h1>Health Portal</h1>
    <p class="meta">Enter your credentials to continue.</p>
    {_banners(error, success)}
    <form method="post" action="/login">
      <div class="form-group"><label for="user_type">I am a</label>
        <select id="user_type" name="user_type">{_user_type_options("patient")}</select></div>
      <div class="form-group"><label for="email">Email</label>
        <input type="email" id="email" name="email" required autocomplete="email"></div>
      <div class="form-group"><label for="password">Password</label>
        <input type="password" id="password" name="password" required autocomplete="current-password"></div>
      <button type="submit" class="btn-primary">Log In</button>
    </form>
    <p class="meta" style="margin-top:16px;"><a href="/forgot-password">Forgot your password?</a></p>
    <p class="meta">No account yet? <a href="/signup">Sign up</a></p>
  </div>
</body>
</html>
"""


def _mirror_remote_user(conn, remote_user: dict):
    """Insert or refresh the local copy of a user found in the remote table."""
    now = _utc_now_storage()
    row = conn.execute("SELECT id FROM users WHERE email = ?", (remote_user["email"],)).fetchone()
    if row:
        conn.execute(
            "UPDATE users SET name = ?, password_hash = ?, user_type = ?, specialization = ?,"
            " medical_license = ?, is_verified = ?, updated_at = ? WHERE id = ?",
            (remote_user["name"], remote_user["password_hash"], remote_user["user_type"],
             remote_user["specialization"], remote_user["medical_license"],
             remote_user["is_verified"], now, row["id"]),
        )
    else:
        conn.execute(
            "INSERT INTO users (name, email, password_hash, user_type, specialization,"
            " medical_license, is_verified, created_at, updated_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (remote_user["name"], remote_user["email"], remote_user["password_hash"],
             remote_user["user_type"], remote_user["specialization"],
             remote_user["medical_license"], remote_user["is_verified"], now, now),
        )
    conn.commit()
    return conn.execute("SELECT * FROM users WHERE email = ?", (remote_user["email"],)).fetchone()


@router.post("/login")
def login_post(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    user_type: str = Form("patient"),
):
    ip = request.client.host if request.client else "unknown"
    if not _is_login_allowed(ip):
        return RedirectResponse(url="/login?error=Too+many+attempts.+Please+wait+before+trying+again.", status_code=303)
    email = email.strip().lower()
    if not email or not password:
        return RedirectResponse(url="/login?error=Please+fill+in+all+fields", status_code=303)
    if user_type not in USER_TYPES:
        return RedirectResponse(url="/login?error=Invalid+credentials", status_code=303)
    remote_user = remote.find_user(email, user_type)
    if remote_user and remote_user["user_type"] == user_type:
        if not _verify_password(password, remote_user["password_hash"]):
            return RedirectResponse(url="/login?error=Invalid+credentials", status_code=303)
        with get_db() as conn:
            row = _mirror_remote_user(conn, remote_user)
    else:
        with get_db() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ? AND user_type = ?", (email, user_type)
            ).fetchone()
        if not row or not _verify_password(password, row["password_hash"]):
            return RedirectResponse(url="/login?error=Invalid+credentials", status_code=303)
    resp = RedirectResponse(url=_home_for(row["user_type"]), status_code=303)
    _set_session_cookie(resp, request, row["id"], row["password_hash"])
    return resp


@router.post("/logout")
def logout():
    resp = RedirectResponse(url="/login", status_code=303)
    resp.delete_cookie(SESSION_COOKIE_NAME)
    return resp


@router.get("/forgot-password", response_class=HTMLResponse)
def forgot_password_get(sent: int = 0, error: str = ""):
    success = "If that email address is registered, a password reset link has been sent." if sent else ""
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Forgot Password</title></head>
<body>
  <div class="container">
    <h1>Forgot Password</h1>
    <p class="meta">Enter the email address associated with your account and we'll send you a reset link.</p>
    {_banners(error, success)}
    <form method="post" action="/forgot-password">
      <div class="form-group"><label for="email">Email address</label>
        <input type="email" id="email" name="email" required autocomplete="email"></div>
      <button type="submit" class="btn-primary">Send Reset Link</button>
    </form>
    <p class="meta" style="margin-top:16px;"><a href="/login">&larr; Back to login</a></p>
  </div>
</body>
</html>
"""


@router.post("/forgot-password")
def forgot_password_post(request: Request, email: str = Form("")):
    ip = request.client.host if request.client else "unknown"
    if not _is_reset_allowed(ip):
        return RedirectResponse(url="/forgot-password?sent=1", status_code=303)
    email = email.strip().lower()
    if email:
        with get_db() as conn:
            user = conn.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone()
            if user:
                token = secrets.token_urlsafe(32)
                conn.execute("DELETE FROM password_reset_tokens WHERE user_id = ?", (user["id"],))
                conn.execute(
                    "INSERT INTO password_reset_tokens (token, user_id, expires_at) VALUES (?, ?, ?)",
                    (token, user["id"], int(time()) + RESET_TOKEN_TTL_SECONDS),
                )
                conn.commit()
        if user:
            base = str(request.base_url).rstrip("/")
            _send_reset_email(email, f"{base}/reset-password?token={token}")
    # Same response whether or not the email is registered
    return RedirectResponse(url="/forgot-password?sent=1", status_code=303)


def _valid_reset_token(token: str):
    if not token:
        return None
    with get_db() as conn:
        row = conn.execute(
            "SELECT user_id, expires_at FROM password_reset_tokens WHERE token = ?", (token,)
        ).fetchone()
    if not row or row["expires_at"] < int(time()):
        return None
    return row


@router.get("/reset-password", response_class=HTMLResponse)
def reset_password_get(token: str = "", error: str = ""):
    if not _valid_reset_token(token):
        return RedirectResponse(url="/forgot-password?error=Reset+link+expired+or+invalid", status_code=303)
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Reset Password</title></head>
<body>
  <div class="container">
    <h1>Reset Password</h1>
    {_banners(error)}
    <form method="post" action="/reset-password">
      <input type="hidden" name="token" value="{html.escape(token)}">
      <div class="form-group"><label for="new_password">New Password</label>
        <input type="password" id="new_password" name="new_password"
          placeholder="At least 8 characters" required autocomplete="new-password"></div>
      <div class="form-group"><label for="confirm_password">Confirm New Password</label>
        <input type="password" id="confirm_password" name="confirm_password"
          required autocomplete="new-password"></div>
      <button type="submit" class="btn-primary">Reset Password</button>
    </form>
  </div>
</body>
</html>
"""


@router.post("/reset-password")
def reset_password_post(
    token: str = Form(""),
    new_password: str = Form(""),
    confirm_password: str = Form(""),
):
    row = _valid_reset_token(token)
    if not row:
        return RedirectResponse(url="/forgot-password?error=Reset+link+expired+or+invalid", status_code=303)
    if len(new_password) < 8:
        return RedirectResponse(
            url=f"/reset-password?token={token}&error=Password+must+be+at+least+8+characters",
            status_code=303,
        )
    if new_password != confirm_password:
        return RedirectResponse(
            url=f"/reset-password?token={token}&error=Passwords+do+not+match", status_code=303
        )
    password_hash = _hash_password(new_password)
    with get_db() as conn:
        conn.execute(
            "UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
            (password_hash, _utc_now_storage(), row["user_id"]),
        )
        conn.execute("DELETE FROM password_reset_tokens WHERE token = ?", (token,))
        conn.commit()
        user = conn.execute("SELECT email, user_type FROM users WHERE id = ?", (row["user_id"],)).fetchone()
    # Login checks the remote row first, so it must carry the new hash too
    remote.update_password(user["email"], user["user_type"], password_hash)
    return RedirectResponse(url="/login?success=Password+updated.+Please+log+in.", status_code=303)
