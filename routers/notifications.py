import html

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

import notify
from config import _current_user_id, _from_utc_storage
from db import get_db
from ui import PAGE_STYLE, _banners, _nav_bar

router = APIRouter()


def _localize(items: list) -> list:
    for n in items:
        n["created_at"] = _from_utc_storage(n["created_at"]).strftime("%Y-%m-%d %H:%M:%S")
    return items


def _notification_card(n: dict) -> str:
    border = "#e0e0e0" if n["read"] else "#3b82f6"
    mark = ""
    if not n["read"]:
        mark = (
            f'<form method="post" action="/notifications/{n["id"]}/read" style="margin:0;">'
            '<button type="submit" class="btn-small">Mark read</button></form>'
        )
    return f"""
      <div class="card" style="border-left:4px solid {border};">
        <div class="row">
          <div>
            <div class="card-name">{html.escape(n['title'])}</div>
            <div class="card-ts">{html.escape(n['created_at'])}</div>
          </div>
          {mark}
        </div>
        <p class="card-notes">{html.escape(n['message'])}</p>
      </div>"""


@router.get("/notifications", response_class=HTMLResponse)
def notifications_page(success: str = ""):
    uid = _current_user_id.get()
    with get_db() as conn:
        items = _localize(notify.list_notifications(conn, uid))
    unread = sum(1 for n in items if not n["read"])
    read_all = ""
    if unread:
        read_all = (
            '<form method="post" action="/notifications/read-all" style="margin:0;">'
            '<button type="submit" class="btn-small">Mark all as read</button></form>'
        )
    cards = "".join(_notification_card(n) for n in items) or '<p class="empty">No notifications.</p>'
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Notifications</title></head>
<body>
  {_nav_bar('notifications')}
  <div class="container">
    <div class="row"><h1>Notifications</h1>{read_all}</div>
    <p class="meta">{unread} unread</p>
    {_banners("", success)}
    {cards}
  </div>
</body>
</html>
"""


@router.post("/notifications/read-all")
def notifications_read_all():
    with get_db() as conn:
        notify.mark_all_read(conn, _current_user_id.get())
    return RedirectResponse(url="/notifications?success=All+notifications+marked+as+read", status_code=303)


@router.post("/notifications/{notification_id}/read")
def notifications_read(notification_id: int):
    with get_db() as conn:
        notify.mark_read(conn, _current_user_id.get(), notification_id)
    return RedirectResponse(url="/notifications", status_code=303)


@router.get("/api/notifications")
def api_notifications():
    uid = _current_user_id.get()
    with get_db() as conn:
        items = _localize(notify.list_notifications(conn, uid))
        unread = notify.unread_count(conn, uid)
    return JSONResponse({"ok": True, "notifications": items, "unread": unread})


@router.post("/api/notifications/read-all")
def api_notifications_read_all():
    with get_db() as conn:
        updated = notify.mark_all_read(conn, _current_user_id.get())
    return JSONResponse({"ok": True, "updated": updated})


@router.post("/api/notifications/{notification_id}/read")
def api_notifications_read(notification_id: int):
    with get_db() as conn:
        found = notify.mark_read(conn, _current_user_id.get(), notification_id)
    if not found:
        return JSONResponse({"ok": False, "error": "Notification not found"}, status_code=404)
    return JSONResponse({"ok": True})
