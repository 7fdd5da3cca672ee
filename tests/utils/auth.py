from jose import jwt

from hallpass.core.config import settings


def get_teacher_authentication_headers(teacher_id: str = "teacher_123") -> dict[str, str]:
    """
    Generates a valid JWT token and authentication headers for a test teacher.
    """
    payload = {"sub": teacher_id, "exp": 9999999999}  # High expiration for tests
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}
