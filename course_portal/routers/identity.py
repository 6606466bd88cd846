"""Request identity — the caller is authenticated upstream and arrives as headers."""

from fastapi import Header, HTTPException

from course_portal.services.preview import ViewerContext, viewer_for

_MAX_ID_LEN = 100


def current_viewer(
    x_user_id: str = Header(""),
    x_user_role: str = Header("student"),
) -> ViewerContext:
    user_id = x_user_id.strip()
    if not user_id or len(user_id) > _MAX_ID_LEN:
        raise HTTPException(status_code=401, detail="X-User-Id header required")
    return viewer_for(user_id, x_user_role.strip().lower() == "admin")


def require_admin(viewer: ViewerContext) -> ViewerContext:
    if not viewer.is_admin:
        raise HTTPException(status_code=403, detail="Administrator access required")
    return viewer
