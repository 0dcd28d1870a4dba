"""
Module containing exceptions raised by the image scanner.
"""


class ReadinessError(Exception):
    """
    Base class for all scanner errors.

    Each concrete error has a unique code, which the command line uses as the exit status.
    """
    __seen__ = dict()

    #: The default message for the error
    message = "Scanner error"
    #: The code for the error
    code = None

    def __init_subclass__(cls):
        # Make sure that the code has not been used for another error
        if cls.code is None:
            return
        # The code is used as the exit status, which is a single byte
        if not 0 < cls.code < 256:
            raise TypeError(f'code {cls.code} is not a valid exit status')
        if cls.code in ReadinessError.__seen__:
            message = 'code {} already in use by {}'.format(
                cls.code,
                ReadinessError.__seen__[cls.code].__name__
            )
            raise TypeError(message)
        ReadinessError.__seen__[cls.code] = cls

    def __init__(self, detail = None):
        self.detail = detail
        super().__init__(f'{self.message}: {detail}' if detail else self.message)


class InvalidConfiguration(ReadinessError):
    """
    Raised when the scanner configuration is not valid.
    """
    message = "Invalid configuration"
    code = 2


class ContainerListingFailed(ReadinessError):
    """
    Raised when the containers running in the cluster cannot be listed.
    """
    message = "Container listing failed"
    code = 100


class DatabaseDownloadFailed(ReadinessError):
    """
    Raised when the vulnerability database cannot be downloaded.
    """
    message = "Vulnerability database download failed"
    code = 200


class ImageScanFailed(ReadinessError):
    """
    Raised when the scan engine fails to scan an image.
    """
    message = "Image scan failed"
    code = 201


class ImagePullFailed(ReadinessError):
    """
    Raised when an image cannot be pulled into the local cache.
    """
    message = "Image pull failed"
    code = 202


class ImageRemoveFailed(ReadinessError):
    """
    Raised when an image cannot be removed from the local cache.
    """
    message = "Image removal failed"
    code = 203


class ImageNameFormatError(ReadinessError):
    """
    Raised when an image name replacement rule is not in the right format.

    The original, unresolved image name is available as ``image_name``.
    """
    message = (
        "Image name replacement is not in the right format "
        "'$matchingString|$replacementString,$matchingString|$replacementString'"
    )
    code = 210

    def __init__(self, detail = None, image_name = None):
        super().__init__(detail)
        self.image_name = image_name


class ComplianceScanFailed(ReadinessError):
    """
    Raised when the compliance benchmark scan fails.
    """
    message = "Compliance scan failed"
    code = 220


class ReportGenerationFailed(ReadinessError):
    """
    Raised when the report cannot be generated from the scan results.
    """
    message = "Report generation failed"
    code = 230
