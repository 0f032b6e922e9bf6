from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse

from config import (
    DOCTOR_PREFIXES,
    PUBLIC_PATHS,
    SHARED_PREFIXES,
    TZ_OFFSET_COOKIE_NAME,
    _current_user_id,
    _current_user_type,
    _set_client_clock,
)
from db import init_db
from security import (
    _csrf_header_valid,
    _ensure_csrf_cookie,
    _get_authenticated_user,
    _home_for,
    _is_same_origin,
)
from routers import (
    appointments,
    assessment,
    auth,
    community,
    dashboard,
    diet_plan,
    doctor,
    goals,
    notifications,
    prescriptions,
)

app = FastAPI(title="Health Portal")

init_db()


def _under(path: str, prefixes) -> bool:
    return any(path == p or path.startswith(p + "/") for p in prefixes)


def _forbidden(path: str, user_type: str):
    if path.startswith("/api/"):
        return JSONResponse({"error": "forbidden"}, status_code=403)
    return RedirectResponse(url=_home_for(user_type), status_code=303)


@app.middleware("http")
async def auth_middleware(request: Request, call_next):
    path = request.url.path
    if request.method in {"POST", "PUT", "PATCH", "DELETE"}:
        if not _is_same_origin(request):
            if path.startswith("/api/"):
                return JSONResponse({"error": "forbidden"}, status_code=403)
            return RedirectResponse(url="/login?error=Forbidden+request", status_code=303)
        if path.startswith("/api/") and not _csrf_header_valid(request):
            return JSONResponse({"error": "forbidden"}, status_code=403)
    _set_client_clock(request.cookies.get(TZ_OFFSET_COOKIE_NAME, ""))

    if path in PUBLIC_PATHS:
        return _ensure_csrf_cookie(request, await call_next(request))

    user = _get_authenticated_user(request)
    if not user:
        if path.startswith("/api/"):
            return JSONResponse({"error": "unauthorized"}, status_code=401)
        return RedirectResponse(url="/login", status_code=303)
    user_type = user["user_type"]
    _current_user_id.set(user["id"])
    _current_user_type.set(user_type)

    # Role guard: notifications are shared, doctor prefixes are doctor-only,
    # everything else belongs to patients.
    if not _under(path, SHARED_PREFIXES):
        if _under(path, DOCTOR_PREFIXES) != (user_type == "doctor"):
            return _forbidden(path, user_type)
    return _ensure_csrf_cookie(request, await call_next(request))


app.include_router(auth.router)
app.include_router(dashboard.router)
app.include_router(assessment.router)
app.include_router(appointments.router)
app.include_router(doctor.router)
app.include_router(community.router)
app.include_router(diet_plan.router)
app.include_router(goals.router)
app.include_router(prescriptions.router)
app.include_router(notifications.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
