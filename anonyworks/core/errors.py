class SessionUnavailable(Exception):
    """The pit does not exist, has been ended, or has expired.

    The three cases are deliberately indistinguishable to callers.
    """
