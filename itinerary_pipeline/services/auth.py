"""
Auth provider that trusts the identity attached to the incoming event.

Token verification happens in front of the handler; by the time a request
reaches the pipeline its user id is either on the request or in a header.
"""

from itinerary_pipeline.services.interfaces import AuthSession, IncomingRequest

USER_ID_HEADERS = ("x-user-id", "x-amzn-oidc-identity")
EMAIL_HEADER = "x-user-email"


class EventAuthProvider:
    """Resolve the caller from the request's ``user_id`` or identity headers."""

    async def resolve_session(self, request: IncomingRequest) -> AuthSession | None:
        headers = {key.lower(): value for key, value in request.headers.items()}

        user_id = request.user_id
        if not user_id:
            user_id = next(
                (headers[name] for name in USER_ID_HEADERS if headers.get(name)), None
            )
        if not user_id or not user_id.strip():
            return None

        return AuthSession(user_id=user_id.strip(), email=headers.get(EMAIL_HEADER))
