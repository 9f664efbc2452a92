# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


from .base_exception import CloudPlanException


class CliError(CloudPlanException):
    """Base class for all CLI errors."""

    def __init__(self, message: str = None, error_code: int = 3000):
        super().__init__(error_code, message)

    def get_message(self) -> str:
        """ Get the error message of the Exception.

        Returns:
            str: Error message.
        """
        return self.strerror


class CommandError(CliError):
    """Command error."""

    def __init__(self, cli_command: str, message: str = None):
        super().__init__(error_code=3001, message=f"Command '{cli_command}' is invalid. {message}")
