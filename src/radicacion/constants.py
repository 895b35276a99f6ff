"""Project-wide named constants.

Constants defined here replace inline magic numbers across the codebase.
"""

# Storage bucket ceiling for a single supporting document. Anything larger is
# rejected by the bucket policy, so the validator refuses it before initiating.
MAX_FILE_SIZE_BYTES: int = 10 * 1024 * 1024

# Bytes read by the validator to confirm a file is readable. Not used for
# magic-byte sniffing: scanned PDFs often carry leading metadata.
HEADER_PROBE_BYTES: int = 4

# Lookup fault recorded when the backend minted a token for a file the client
# no longer holds. Not transient, never retried.
FILE_NOT_FOUND_FOR_TOKEN: str = "file not found for token"

# Error recorded on files still failing after a recovery pass.
RECOVERY_EXHAUSTED_MESSAGE: str = "Error tras múltiples reintentos"

# Declared file for which the backend minted no signed URL. Nothing to
# upload to, so it is never retried.
NO_UPLOAD_TOKEN_MESSAGE: str = "El servidor no emitió URL de subida para este archivo"

RESUBMIT_MESSAGE: str = (
    "Ningún archivo fue recibido. El radicado fue eliminado. "
    "Debe realizar una nueva radicación."
)

INITIATE_ENDPOINT: str = "/functions/v1/init-radicacion"
FINALIZE_ENDPOINT: str = "/functions/v1/finalizar-radicacion"
