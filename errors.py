"""Error taxonomy shared by the store, auth and catalog layers."""


class StreamTVError(Exception):
    status_code = 500
    message = "Something went wrong - Try again later"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ValidationError(StreamTVError):
    status_code = 400
    message = "Please correct the highlighted fields"

    def __init__(self, errors):
        # field name -> message
        self.errors = dict(errors)
        super().__init__()


class DuplicateUsernameError(StreamTVError):
    status_code = 409
    message = "Username already exists - Try again"


class InvalidCredentialsError(StreamTVError):
    status_code = 401
    message = "Invalid User Name or Password - Try again"


class NotFoundError(StreamTVError):
    status_code = 404
    message = "Not found"


class StoreError(StreamTVError):
    status_code = 500


class IntegrityViolation(StoreError):
    pass
