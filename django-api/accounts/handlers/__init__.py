from accounts.handlers.authentication import BearerTokenAuthentication, IsOrganizer, IsParticipant

__all__ = ["BearerTokenAuthentication", "IsOrganizer", "IsParticipant"]
