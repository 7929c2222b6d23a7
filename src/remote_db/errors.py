class RemoteDBError(Exception):
    '''
    Base for every error raised by remote_db itself.

    '''


class TableExistsError(RemoteDBError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f'table {name} already exists (pass overwrite=True to overwrite)'
        )


class UnknownColumnError(RemoteDBError):
    def __init__(self, missing: tuple[str, ...]) -> None:
        self.missing = tuple(missing)
        super().__init__(
            'The following columns are not in the data frame: '
            + ', '.join(self.missing)
        )


class InvalidArgumentError(RemoteDBError, ValueError): ...


class UnsupportedVersionError(RemoteDBError): ...


class InvocationError(RemoteDBError):
    '''
    A remote call failed, `str(e)` is the remote diagnostic untouched.

    '''
    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        target: str | None = None
    ) -> None:
        self.method = method
        self.target = target
        super().__init__(message)


class UnknownTableError(RemoteDBError, KeyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'no table named {name} is registered')

    def __str__(self) -> str:
        return self.args[0]
