import html

from fastapi import APIRouter, Body, Form
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from config import _from_utc_storage, _utc_now_storage
from db import get_db
from security import _current_user
from ui import PAGE_STYLE, _banners, _nav_bar

router = APIRouter()

MOODS = ("happy", "neutral", "sad")
MOOD_ICONS = {"happy": "&#128522;", "neutral": "&#128528;", "sad": "&#128546;"}
POST_CATEGORIES = [
    "General",
    "Treatment Journey",
    "Mental Health",
    "Nutrition",
    "Milestones",
    "Side Effects",
]
MAX_POST_LEN = 2000

_POST_COLS = "id, user_id, author, content, mood, category, likes, created_at"


def _validate_post(content: str, mood: str, category: str):
    content = content.strip()
    if not content:
        return ("Post content is required", None)
    if len(content) > MAX_POST_LEN:
        return (f"Posts must be {MAX_POST_LEN} characters or fewer", None)
    mood = mood.strip() or "neutral"
    if mood not in MOODS:
        return ("Unknown mood", None)
    category = category.strip() or "General"
    if category not in POST_CATEGORIES:
        return ("Unknown category", None)
    return ("", (content, mood, category))


def _row_to_dict(row) -> dict:
    item = dict(row)
    item["created_at"] = _from_utc_storage(item["created_at"]).strftime("%Y-%m-%d %H:%M:%S")
    return item


def _list_posts() -> list:
    with get_db() as conn:
        rows = conn.execute(f"SELECT {_POST_COLS} FROM community_posts ORDER BY id DESC").fetchall()
    return [_row_to_dict(r) for r in rows]


def _create_post(author, content: str, mood: str, category: str):
    error, cleaned = _validate_post(content, mood, category)
    if error:
        return (error, None)
    content, mood, category = cleaned
    with get_db() as conn:
        cur = conn.execute(
            "INSERT INTO community_posts (user_id, author, content, mood, category, likes, created_at)"
            " VALUES (?, ?, ?, ?, ?, 0, ?)",
            (author["id"], author["name"], content, mood, category, _utc_now_storage()),
        )
        conn.commit()
        row = conn.execute(f"SELECT {_POST_COLS} FROM community_posts WHERE id = ?", (cur.lastrowid,)).fetchone()
    return ("", _row_to_dict(row))


def _like_post(post_id: int):
    with get_db() as conn:
        cur = conn.execute("UPDATE community_posts SET likes = likes + 1 WHERE id = ?", (post_id,))
        conn.commit()
        if cur.rowcount == 0:
            return None
        row = conn.execute(f"SELECT {_POST_COLS} FROM community_posts WHERE id = ?", (post_id,)).fetchone()
    return _row_to_dict(row)


def _post_card(p: dict) -> str:
    return f"""
      <div class="card">
        <div class="row">
          <div>
            <div class="card-name">{MOOD_ICONS.get(p['mood'], '')} {html.escape(p['author'])}</div>
            <div class="card-ts">{html.escape(p['category'])} &middot; {html.escape(p['created_at'][:16])}</div>
          </div>
          <form method="post" action="/community/{p['id']}/like" style="margin:0;">
            <button type="submit" class="btn-small">&#9829; {p['likes']}</button>
          </form>
        </div>
        <p class="card-notes" style="white-space:pre-wrap;">{html.escape(p['content'])}</p>
      </div>"""


@router.get("/community", response_class=HTMLResponse)
def community_page(error: str = "", success: str = ""):
    posts = _list_posts()
    mood_opts = "".join(
        f'<option value="{m}"{" selected" if m == "neutral" else ""}>{m.title()}</option>' for m in MOODS
    )
    category_opts = "".join(f'<option value="{c}">{c}</option>' for c in POST_CATEGORIES)
    cards = "".join(_post_card(p) for p in posts) or '<p class="empty">No posts yet. Start the conversation!</p>'
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Community</title></head>
<body>
  {_nav_bar('community')}
  <div class="container">
    <h1>Community</h1>
    <p class="meta">Share your journey and support others.</p>
    {_banners(error, success)}
    <div class="card">
      <form method="post" action="/community">
        <div class="form-group"><label for="content">What's on your mind?</label>
          <textarea id="content" name="content" rows="3" maxlength="{MAX_POST_LEN}" required></textarea></div>
        <div class="row">
          <div class="form-group" style="flex:1;"><label for="mood">Mood</label>
            <select id="mood" name="mood">{mood_opts}</select></div>
          <div class="form-group" style="flex:1;"><label for="category">Category</label>
            <select id="category" name="category">{category_opts}</select></div>
        </div>
        <button type="submit" class="btn-primary">Post</button>
      </form>
    </div>
    {cards}
  </div>
</body>
</html>
"""


@router.post("/community")
def community_create(content: str = Form(""), mood: str = Form("neutral"), category: str = Form("General")):
    error, _ = _create_post(_current_user(), content, mood, category)
    if error:
        return RedirectResponse(url="/community?error=" + error.replace(" ", "+"), status_code=303)
    return RedirectResponse(url="/community?success=Post+shared", status_code=303)


@router.post("/community/{post_id}/like")
def community_like(post_id: int):
    if _like_post(post_id) is None:
        return RedirectResponse(url="/community?error=Post+not+found", status_code=303)
    return RedirectResponse(url="/community", status_code=303)


@router.get("/api/community/posts")
def api_posts():
    return JSONResponse({"ok": True, "posts": _list_posts()})


@router.post("/api/community/posts")
def api_posts_create(payload: dict = Body(...)):
    error, post = _create_post(
        _current_user(),
        str(payload.get("content", "") or ""),
        str(payload.get("mood", "") or ""),
        str(payload.get("category", "") or ""),
    )
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    return JSONResponse({"ok": True, "post": post})


@router.post("/api/community/posts/{post_id}/like")
def api_posts_like(post_id: int):
    post = _like_post(post_id)
    if post is None:
        return JSONResponse({"ok": False, "error": "Post not found"}, status_code=404)
    return JSONResponse({"ok": True, "post": post})
