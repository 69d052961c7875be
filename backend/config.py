import os
import sys
from pathlib import Path
from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')


# ====================================================================
# VALIDAÇÃO DE VARIÁVEIS DE AMBIENTE CRÍTICAS
# ====================================================================
def get_required_env(key: str) -> str:
    """Obter variável de ambiente obrigatória. Falha se não existir."""
    value = os.environ.get(key)
    if not value:
        print(f"❌ ERRO FATAL: Variável de ambiente '{key}' não definida!", file=sys.stderr)
        print(f"   Configure no ficheiro .env ou nas variáveis de ambiente do sistema.", file=sys.stderr)
        sys.exit(1)
    return value


def _env_list(key: str, default: str) -> list:
    return [item.strip() for item in os.environ.get(key, default).split(',') if item.strip()]


TESTING = os.environ.get('TESTING', 'false').lower() == 'true'


# ====================================================================
# JWT CONFIG (OBRIGATÓRIO)
# ====================================================================
# Os tokens são emitidos pelo serviço de autenticação externo.
# Este backend apenas os verifica para identificar o utilizador.
# ====================================================================
JWT_SECRET = get_required_env('JWT_SECRET')
JWT_ALGORITHM = os.environ.get('JWT_ALGORITHM', 'HS256')

if 'change-in-production' in JWT_SECRET or JWT_SECRET == 'super-secret-key':
    print("⚠️  AVISO: JWT_SECRET parece ser um valor de exemplo. Altere em produção!", file=sys.stderr)


# ====================================================================
# DATABASE CONFIG (OBRIGATÓRIO)
# ====================================================================
MONGO_URL = get_required_env('MONGO_URL')
DB_NAME = get_required_env('DB_NAME')


# ====================================================================
# CORS CONFIG (FAIL-SECURE)
# ====================================================================
# Formato: "https://domain1.com,https://domain2.com"
# ====================================================================
_cors_env = os.environ.get('CORS_ORIGINS', '').strip().strip('"').strip("'")

if not _cors_env:
    raise ValueError(
        "❌ ERRO FATAL: CORS_ORIGINS não definido!\n"
        "   Exemplo: CORS_ORIGINS='https://crm.corretora.com.br'"
    )

if _cors_env == '*':
    raise ValueError(
        "❌ ERRO FATAL: CORS_ORIGINS='*' não é permitido!\n"
        "   Configure origens específicas: CORS_ORIGINS='https://crm.corretora.com.br'"
    )

CORS_ORIGINS = []
_invalid_origins = []

for origin in _cors_env.split(','):
    origin = origin.strip()
    if not origin:
        continue

    if origin.startswith('https://'):
        CORS_ORIGINS.append(origin)
    elif origin.startswith('http://localhost') or origin.startswith('http://127.0.0.1'):
        # localhost apenas para desenvolvimento
        CORS_ORIGINS.append(origin)
    elif origin.startswith('http://'):
        _invalid_origins.append(f"{origin} (HTTP não seguro)")
    else:
        _invalid_origins.append(f"{origin} (formato inválido)")

if _invalid_origins:
    print(f"⚠️  Origens CORS ignoradas: {', '.join(_invalid_origins)}", file=sys.stderr)

if not CORS_ORIGINS:
    raise ValueError(
        f"❌ ERRO FATAL: Nenhuma origem CORS válida configurada!\n"
        f"   Origens rejeitadas: {', '.join(_invalid_origins) if _invalid_origins else 'nenhuma fornecida'}"
    )

CORS_ALLOW_CREDENTIALS = os.environ.get('CORS_ALLOW_CREDENTIALS', 'true').lower() == 'true'
CORS_ALLOW_METHODS = os.environ.get('CORS_ALLOW_METHODS', 'GET,POST,PUT,DELETE,OPTIONS,PATCH').split(',')
CORS_ALLOW_HEADERS = os.environ.get('CORS_ALLOW_HEADERS', 'Authorization,Content-Type,Accept,Origin,X-Requested-With').split(',')
CORS_MAX_AGE = int(os.environ.get('CORS_MAX_AGE', '600'))


# ====================================================================
# SENTRY CONFIG (OBSERVABILIDADE)
# ====================================================================
# SENTRY_DSN é opcional - se não definido, Sentry fica desactivado
# ====================================================================
SENTRY_DSN = os.environ.get('SENTRY_DSN', '')
SENTRY_ENVIRONMENT = os.environ.get('SENTRY_ENVIRONMENT', 'development')
SENTRY_TRACES_SAMPLE_RATE = float(os.environ.get('SENTRY_TRACES_SAMPLE_RATE', '1.0'))
SENTRY_PROFILES_SAMPLE_RATE = float(os.environ.get('SENTRY_PROFILES_SAMPLE_RATE', '0.1'))
SENTRY_SEND_DEFAULT_PII = os.environ.get('SENTRY_SEND_DEFAULT_PII', 'false').lower() == 'true'

if not SENTRY_DSN and not TESTING:
    print("⚠️  SENTRY_DSN não configurado - observabilidade desactivada", file=sys.stderr)


# ====================================================================
# PIPELINE DE LEADS
# ====================================================================
# Modalidades tratadas como pessoa física (exigem documento com foto
# no fechamento). As restantes exigem o cartão CNPJ.
INDIVIDUAL_TIPOS = _env_list('INDIVIDUAL_TIPOS', 'PF,Familiar,pessoa_fisica')

# Criar as colunas padrão do kanban quando o registo de etapas está vazio
SEED_DEFAULT_STAGES = os.environ.get('SEED_DEFAULT_STAGES', 'true').lower() == 'true'

# Limite de leads carregados por pedido (working set do quadro)
LEADS_MAX_RESULTS = int(os.environ.get('LEADS_MAX_RESULTS', '2000'))


# ====================================================================
# DOCUMENTOS DOS LEADS (S3 / R2 / MinIO)
# ====================================================================
AWS_ACCESS_KEY_ID = os.environ.get('AWS_ACCESS_KEY_ID', '')
AWS_SECRET_ACCESS_KEY = os.environ.get('AWS_SECRET_ACCESS_KEY', '')
AWS_REGION = os.environ.get('AWS_REGION', 'sa-east-1')
AWS_ENDPOINT_URL = os.environ.get('AWS_ENDPOINT_URL') or None
LEAD_DOCS_BUCKET = os.environ.get('LEAD_DOCS_BUCKET', 'lead-documentos')
LEAD_DOC_MAX_SIZE_MB = int(os.environ.get('LEAD_DOC_MAX_SIZE_MB', '10'))
LEAD_DOC_EXTENSIONS = _env_list('LEAD_DOC_EXTENSIONS', '.pdf,.jpg,.jpeg,.png')

if not (AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY) and not TESTING:
    print("⚠️  Credenciais S3 não configuradas - upload de documentos indisponível", file=sys.stderr)
