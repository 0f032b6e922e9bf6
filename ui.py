import html

from config import _current_user_id, _current_user_type
from db import get_db
from notify import unread_count

STATUS_COLORS = {
    "scheduled": "#eab308",
    "accepted":  "#22c55e",
    "completed": "#3b82f6",
    "cancelled": "#ef4444",
    "active":    "#3b82f6",
    "paused":    "#6b7280",
    "expired":   "#9ca3af",
}

RISK_COLORS = {
    "High":         "#ef4444",
    "Moderate":     "#f97316",
    "Low-Moderate": "#eab308",
    "Low":          "#22c55e",
}


def _status_badge(status: str) -> str:
    color = STATUS_COLORS.get(status, "#6b7280")
    return (
        f'<span style="font-size:12px;background:{color};color:#fff;border-radius:10px;'
        f'padding:2px 9px;font-weight:700;">{html.escape(status)}</span>'
    )


def _risk_color(level) -> str:
    return RISK_COLORS.get(level or "", "#6b7280")


def _banners(error: str = "", success: str = "") -> str:
    out = f'<div class="alert">{html.escape(error)}</div>' if error else ""
    if success:
        out += f'<div class="success">{html.escape(success)}</div>'
    return out


def _unread_count(uid: int) -> int:
    if not uid:
        return 0
    with get_db() as conn:
        return unread_count(conn, uid)


def _nav_bar(active: str = "") -> str:
    uid = _current_user_id.get()
    user_type = _current_user_type.get()
    unread = _unread_count(uid)

    def lnk(href, label, key):
        if active == key:
            s = "color:#fff; font-weight:600; border-bottom:2px solid rgba(255,255,255,0.8); padding-bottom:2px;"
        else:
            s = "color:rgba(255,255,255,0.7); font-weight:500;"
        return f'<a href="{href}" style="text-decoration:none; font-size:14px; {s}">{label}</a>'

    if user_type == "doctor":
        links = lnk("/doctor", "Dashboard", "doctor")
    else:
        links = (
            lnk("/dashboard", "Dashboard", "dashboard")
            + lnk("/assessment", "Assessment", "assessment")
            + lnk("/appointments", "Appointments", "appointments")
            + lnk("/community", "Community", "community")
            + lnk("/diet-plan", "Diet Plan", "diet")
            + lnk("/goals", "Goals", "goals")
            + lnk("/prescriptions", "Prescriptions", "prescriptions")
        )
    bell_label = f"Notifications ({unread})" if unread else "Notifications"
    return (
        '<nav style="background:#1e3a8a;">'
        '<div style="padding:0 24px; min-height:52px; display:flex; align-items:center; gap:20px; flex-wrap:wrap;">'
        '<span style="font-weight:800; color:#fff; font-size:15px; margin-right:8px;">Health Portal</span>'
        f'<div style="flex:1; display:flex; gap:18px; flex-wrap:wrap;">{links}</div>'
        + lnk("/notifications", bell_label, "notifications")
        + '<form method="post" action="/logout" style="margin:0;">'
        '<button type="submit" style="background:transparent; border:1px solid rgba(255,255,255,0.4);'
        ' color:rgba(255,255,255,0.7); border-radius:6px; padding:4px 12px;'
        ' font-size:13px; cursor:pointer; font-family:inherit;">Log Out</button>'
        '</form>'
        '</div>'
        '</nav>'
    )


PAGE_STYLE = """
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <script>
    (function () {
      document.cookie = "tz_offset=" + encodeURIComponent(String(new Date().getTimezoneOffset()))
        + "; path=/; max-age=31536000; SameSite=Lax";
    })();
  </script>
  <style>
    body { font-family: system-ui, sans-serif; background: #f5f5f5; margin: 0; padding: 0; color: #222; }
    .container { max-width: 760px; margin: 0 auto; padding: 24px; }
    h1 { margin-bottom: 4px; }
    h2 { font-size: 17px; margin: 0 0 10px; }
    .card { background: #fff; border: 1px solid #e0e0e0; border-radius: 8px; padding: 16px; margin: 12px 0; }
    .card-name { font-size: 17px; font-weight: 600; }
    .card-ts { font-size: 12px; color: #888; margin-top: 2px; }
    .card-notes { margin: 10px 0 0; font-size: 14px; color: #444; }
    .row { display: flex; align-items: center; justify-content: space-between; gap: 10px; flex-wrap: wrap; }
    .btn-primary { background: #3b82f6; color: #fff; border: none; border-radius: 8px;
                   padding: 10px 22px; font-size: 15px; cursor: pointer; font-weight: 600; }
    .btn-primary:hover { background: #2563eb; }
    .btn-small { background: #fff; border: 1px solid #d1d5db; border-radius: 6px; padding: 4px 10px;
                 font-size: 13px; cursor: pointer; font-family: inherit; }
    .btn-small:hover { background: #eff6ff; border-color: #3b82f6; }
    .btn-accept { background: #059669; color: #fff; border: none; border-radius: 6px;
                  padding: 6px 14px; font-size: 13px; cursor: pointer; font-weight: 600; }
    .btn-reject { background: none; border: 1px solid #e0e0e0; border-radius: 6px;
                  padding: 6px 12px; font-size: 13px; color: #888; cursor: pointer; }
    .btn-reject:hover { background: #fee2e2; border-color: #ef4444; color: #ef4444; }
    .form-group { margin-bottom: 18px; }
    label { display: block; font-weight: 600; font-size: 14px; margin-bottom: 6px; }
    input[type=text], input[type=password], input[type=email], input[type=date], input[type=time],
    input[type=number], select, textarea { width: 100%; box-sizing: border-box; border: 1px solid #d1d5db;
      border-radius: 6px; padding: 8px 10px; font-size: 15px; font-family: inherit; }
    .check { display: flex; align-items: center; gap: 8px; font-weight: 400; margin-bottom: 6px; }
    .alert { background: #fee2e2; border: 1px solid #fca5a5; color: #b91c1c;
             border-radius: 6px; padding: 10px 14px; margin-bottom: 16px; font-size: 14px; }
    .success { background: #dcfce7; border: 1px solid #86efac; color: #15803d; border-radius: 6px;
               padding: 10px 14px; margin-bottom: 16px; font-size: 14px; }
    .empty { color: #888; font-style: italic; margin-top: 16px; }
    .meta { font-size: 13px; color: #666; }
    .progress { background: #e5e7eb; border-radius: 6px; height: 10px; overflow: hidden; }
    .progress > div { background: #3b82f6; height: 10px; }
  </style>
"""
