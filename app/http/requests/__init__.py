from app.http.requests.schemas import *  # noqa: F401,F403
