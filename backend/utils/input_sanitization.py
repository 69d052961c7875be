"""
====================================================================
SANITIZAÇÃO DE INPUTS
====================================================================
Limpeza de texto livre vindo do quadro de leads e da captação
pública. Usa a biblioteca 'bleach' para remover HTML.
====================================================================
"""
import re
import logging
from typing import Optional

import bleach

logger = logging.getLogger(__name__)

# Nenhuma tag HTML permitida
ALLOWED_TAGS = []
ALLOWED_ATTRIBUTES = {}
ALLOWED_PROTOCOLS = ['http', 'https', 'mailto']


def _strip_html(value: str) -> str:
    value = value.replace('\x00', '')
    value = bleach.clean(
        value,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True
    )
    # Entidades que possam ter escapado
    value = re.sub(r'&[a-zA-Z]+;', '', value)
    value = re.sub(r'&#\d+;', '', value)
    return re.sub(r'&#x[0-9a-fA-F]+;', '', value)


def sanitize_string(value: Optional[str], max_length: int = 200) -> str:
    """
    Remove HTML, normaliza espaços e limita o tamanho.
    Para campos de uma linha (nome, endereço).
    """
    if not value:
        return ""
    if not isinstance(value, str):
        value = str(value)

    value = ' '.join(_strip_html(value).split())
    return value[:max_length].strip()


def sanitize_text(value: Optional[str], max_length: int = 2000) -> str:
    """
    Como sanitize_string, mas preserva quebras de linha.
    Para justificativas e respostas do administrador.
    """
    if not value:
        return ""
    if not isinstance(value, str):
        value = str(value)

    lines = [' '.join(line.split()) for line in _strip_html(value).splitlines()]
    value = '\n'.join(line for line in lines if line)
    return value[:max_length].strip()


def sanitize_email(email: Optional[str]) -> Optional[str]:
    """
    Normaliza o email para lowercase.
    Retorna None se vazio ou inválido.
    """
    if not email:
        return None

    email = sanitize_string(email, max_length=120).lower()

    if email.startswith('mailto:'):
        email = email.replace('mailto:', '')

    if not re.match(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', email):
        logger.warning(f"Email inválido após sanitização: {email[:20]}...")
        return None

    return email


def sanitize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Mantém apenas dígitos e o + inicial.
    Retorna None se não sobrar um número plausível (mín. 8 dígitos).
    """
    if not phone:
        return None

    phone = sanitize_string(phone, max_length=25)
    has_plus = phone.startswith('+')
    digits = re.sub(r'\D', '', phone)

    if len(digits) < 8:
        return None

    return ('+' if has_plus else '') + digits


def sanitize_document_number(value: Optional[str]) -> Optional[str]:
    """CPF/CNPJ: apenas dígitos."""
    if not value:
        return None
    digits = re.sub(r'\D', '', value)
    return digits or None
