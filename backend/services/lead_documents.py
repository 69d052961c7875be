"""
====================================================================
DOCUMENTOS DOS LEADS (S3 / Cloudflare R2 / MinIO)
====================================================================
Upload dos anexos do lead (documento com foto, cartão CNPJ,
comprovante de endereço, cotação). O lead guarda apenas a chave
devolvida pelo armazenamento; as regras do pipeline só verificam
se a chave existe.
====================================================================
"""
import os
import re
import time
import asyncio
import logging
from typing import Optional, BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from config import (
    AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, AWS_REGION, AWS_ENDPOINT_URL,
    LEAD_DOCS_BUCKET, LEAD_DOC_MAX_SIZE_MB, LEAD_DOC_EXTENSIONS
)
from models.lead import DocumentSlot
from services import lead_repository
from services.errors import NotFoundError, TransportError, ValidationError
from services.history import log_history
from services.lead_kanban import get_visible_lead
from services.leads import get_modifiable_lead
from services.stage_registry import list_stages
from services.transition_rules import check_current_stage

logger = logging.getLogger(__name__)


def sanitize_filename(name: str) -> str:
    """Remove caracteres especiais do nome do ficheiro."""
    if not name:
        return "arquivo"
    base, ext = os.path.splitext(os.path.basename(name))
    base = re.sub(r'[^\w\s-]', '', base)
    base = re.sub(r'\s+', '_', base.strip())[:60]
    return f"{base or 'arquivo'}{ext.lower()}"


class LeadStorageService:
    def __init__(self):
        self.s3_client = None
        self.bucket_name = LEAD_DOCS_BUCKET
        if AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY:
            self.s3_client = boto3.client(
                's3',
                aws_access_key_id=AWS_ACCESS_KEY_ID,
                aws_secret_access_key=AWS_SECRET_ACCESS_KEY,
                region_name=AWS_REGION,
                endpoint_url=AWS_ENDPOINT_URL,
            )
            logger.info("Armazenamento de documentos S3 inicializado.")

    def is_configured(self) -> bool:
        return self.s3_client is not None and bool(self.bucket_name)

    @staticmethod
    def build_object_name(lead_id: str, slot: DocumentSlot, filename: str) -> str:
        """Formato: leads/{lead_id}/{slot}_{timestamp}_{ficheiro}"""
        return f"leads/{lead_id}/{slot.value}_{int(time.time() * 1000)}_{sanitize_filename(filename)}"

    def upload_file(self, file_obj: BinaryIO, object_name: str, content_type: str = None) -> str:
        """
        Faz upload e retorna a chave guardada.

        Raises:
            TransportError: armazenamento indisponível ou erro no upload
        """
        if not self.is_configured():
            raise TransportError("Armazenamento de documentos não configurado.")

        extra_args = {'ContentType': content_type} if content_type else None
        try:
            self.s3_client.upload_fileobj(file_obj, self.bucket_name, object_name, ExtraArgs=extra_args)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Erro no upload para S3 ({object_name}): {e}")
            raise TransportError("Falha ao enviar o documento. Tente novamente.") from e

        logger.info(f"Upload S3 sucesso: {object_name}")
        return object_name

    def delete_file(self, object_name: str) -> bool:
        if not self.is_configured():
            return False
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=object_name)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Erro ao apagar do S3 ({object_name}): {e}")
            return False

    def get_presigned_url(self, object_name: str, expiration: int = 3600) -> Optional[str]:
        if not self.is_configured():
            return None
        try:
            return self.s3_client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket_name, 'Key': object_name},
                ExpiresIn=expiration
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Erro ao gerar URL para {object_name}: {e}")
            return None


storage_service = LeadStorageService()


MAX_UPLOAD_BYTES = LEAD_DOC_MAX_SIZE_MB * 1024 * 1024

# Validade dos links de download (segundos)
DOWNLOAD_URL_EXPIRATION = 900


def validate_upload(filename: str, size: int) -> None:
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in LEAD_DOC_EXTENSIONS:
        raise ValidationError(f"Formato não permitido. Use: {', '.join(LEAD_DOC_EXTENSIONS)}")
    if size > MAX_UPLOAD_BYTES:
        raise ValidationError(f"Arquivo excede o limite de {LEAD_DOC_MAX_SIZE_MB} MB.")
    if size == 0:
        raise ValidationError("Arquivo vazio.")


async def read_upload(upload, chunk_size: int = 1024 * 1024) -> bytes:
    """
    Lê o upload em blocos, sem passar do limite configurado.
    Recusa logo pelo tamanho declarado quando o cliente o envia.
    """
    if upload.size is not None:
        validate_upload(upload.filename, upload.size)

    content = bytearray()
    while True:
        chunk = await upload.read(chunk_size)
        if not chunk:
            break
        content.extend(chunk)
        if len(content) > MAX_UPLOAD_BYTES:
            validate_upload(upload.filename, len(content))
    return bytes(content)


async def attach_document(
    lead_id: str,
    slot: DocumentSlot,
    file_obj: BinaryIO,
    filename: str,
    size: int,
    user: dict,
    content_type: str = None,
    expected_version: Optional[int] = None
) -> dict:
    """
    Guarda o ficheiro e associa a chave ao campo do lead.
    Upload primeiro, gravação no lead depois.
    """
    slot = DocumentSlot(slot)
    lead = await get_modifiable_lead(lead_id, user)
    validate_upload(filename, size)

    object_name = storage_service.build_object_name(lead_id, slot, filename)
    await asyncio.to_thread(storage_service.upload_file, file_obj, object_name, content_type)

    version = expected_version if expected_version is not None else lead.get("version", 1)
    try:
        updated = await lead_repository.update_lead(
            lead_id, {slot.field: object_name}, expected_version=version
        )
    except Exception:
        # Ficheiro órfão: o lead não chegou a referenciá-lo
        await asyncio.to_thread(storage_service.delete_file, object_name)
        raise

    await log_history(lead_id, user, "Anexou documento", slot.field, lead.get(slot.field), object_name)
    return updated


async def remove_document(
    lead_id: str,
    slot: DocumentSlot,
    user: dict,
    expected_version: Optional[int] = None
) -> dict:
    """
    Limpa o campo do documento.
    Recusado se a etapa actual do lead exigir esse documento.
    """
    slot = DocumentSlot(slot)
    lead = await get_modifiable_lead(lead_id, user)
    previous = lead.get(slot.field)
    if not previous:
        return lead

    stages = await list_stages()
    reason = check_current_stage({**lead, slot.field: None}, stages)
    if reason:
        raise ValidationError(f"Documento exigido pela etapa atual. {reason}")

    version = expected_version if expected_version is not None else lead.get("version", 1)
    updated = await lead_repository.update_lead(lead_id, {slot.field: None}, expected_version=version)

    await asyncio.to_thread(storage_service.delete_file, previous)
    await log_history(lead_id, user, "Removeu documento", slot.field, previous, None)
    return updated


async def document_download_url(lead_id: str, slot: DocumentSlot, user: dict) -> dict:
    """URL temporária para ver um documento de um lead visível ao utilizador."""
    slot = DocumentSlot(slot)
    lead = await get_visible_lead(lead_id, user)
    object_name = lead.get(slot.field)
    if not object_name:
        raise NotFoundError("Documento não anexado.")

    url = await asyncio.to_thread(
        storage_service.get_presigned_url, object_name, DOWNLOAD_URL_EXPIRATION
    )
    if url is None:
        raise TransportError("Não foi possível gerar o link do documento. Tente novamente.")
    return {"slot": slot.value, "url": url, "expires_in": DOWNLOAD_URL_EXPIRATION}
