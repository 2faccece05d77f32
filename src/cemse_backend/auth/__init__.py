from .passwords import hash_password, verify_password, generate_temporary_password
from .sessions import SessionData, SessionProvider, get_session_provider, extract_session_token
