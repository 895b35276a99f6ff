"""Pydantic wire models for the initiate and finalize functions.

The backend speaks camelCase JSON; models expose snake_case attributes
and serialise back to camelCase with ``by_alias=True``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from radicacion.models import (
    FinalizeResult,
    FinalizeStatus,
    InitiateResult,
    UploadToken,
)


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SubmissionMetadata(_WireModel):
    """Form fields describing a submission (everything except the files)."""

    radicador_email: str = Field(alias="radicadorEmail")
    eps: str
    regimen: str
    servicio_prestado: str = Field(alias="servicioPrestado")
    fecha_atencion: str = Field(alias="fechaAtencion")
    radicador_nombre: str | None = Field(default=None, alias="radicadorNombre")
    tipo_id: str | None = Field(default=None, alias="tipoId")
    identificacion: str | None = None
    nombres_completos: str | None = Field(default=None, alias="nombresCompletos")
    observaciones: str | None = None


class ManifestFile(_WireModel):
    name: str
    size: int


class ManifestGroup(_WireModel):
    """Files declared for one category. No content, only name and size."""

    categoria: str
    files: list[ManifestFile]


class InitiateRequest(SubmissionMetadata):
    archivos: list[ManifestGroup]


class UploadTokenPayload(_WireModel):
    signed_url: str = Field(alias="signedUrl")
    token: str
    path: str
    category: str
    original_name: str = Field(alias="originalName")

    def to_token(self) -> UploadToken:
        return UploadToken(
            signed_url=self.signed_url,
            token=self.token,
            path=self.path,
            category=self.category,
            original_name=self.original_name,
        )


class InitiateResponse(_WireModel):
    success: bool
    radicado: str
    soporte_id: str = Field(alias="soporteId")
    upload_tokens: list[UploadTokenPayload] = Field(
        default_factory=list, alias="uploadTokens"
    )

    def to_result(self) -> InitiateResult:
        return InitiateResult(
            radicado=self.radicado,
            soporte_id=self.soporte_id,
            upload_tokens=[t.to_token() for t in self.upload_tokens],
        )


class FinalizeResponse(_WireModel):
    success: bool
    radicado: str
    upload_status: FinalizeStatus = Field(alias="uploadStatus")
    archivos_exitosos: int = Field(alias="archivosExitosos")
    archivos_faltantes: int = Field(alias="archivosFaltantes")
    total_esperados: int = Field(alias="totalEsperados")
    eliminado: bool = False
    mensaje: str | None = None

    def to_result(self) -> FinalizeResult:
        return FinalizeResult(
            radicado=self.radicado,
            upload_status=self.upload_status,
            archivos_exitosos=self.archivos_exitosos,
            archivos_faltantes=self.archivos_faltantes,
            total_esperados=self.total_esperados,
            eliminado=self.eliminado,
            mensaje=self.mensaje,
        )
