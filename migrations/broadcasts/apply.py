"""
Script para aplicar as migrations de broadcasts.

Uso:
    python migrations/broadcasts/apply.py

Requer: SUPABASE_URL e SUPABASE_SERVICE_KEY no .env e a funcao
`exec_sql` no banco. Sem ela, execute os SQLs no Supabase SQL Editor.
"""
import sys
from pathlib import Path

from supabase import create_client

from app.core.config import settings

# Diretorio das migrations
MIGRATIONS_DIR = Path(__file__).parent

# Ordem das migrations
MIGRATIONS = [
    "001_broadcasts.sql",
]


def apply_migrations(client) -> bool:
    """Aplica todas as migrations em ordem. Retorna False se alguma falhou."""
    ok = True
    for migration_file in MIGRATIONS:
        path = MIGRATIONS_DIR / migration_file
        if not path.exists():
            print(f"[SKIP] {migration_file} nao encontrado")
            continue

        print(f"[APPLY] {migration_file}...")

        try:
            client.rpc("exec_sql", {"sql": path.read_text()}).execute()
            print(f"[OK] {migration_file}")
        except Exception as e:
            print(f"[ERROR] {migration_file}: {e}")
            ok = False

    return ok


if __name__ == "__main__":
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
        print("Erro: SUPABASE_URL e SUPABASE_SERVICE_KEY necessarios no .env")
        sys.exit(1)

    print("=== Broadcasts Migrations ===")
    print(f"URL: {settings.SUPABASE_URL}")
    print()

    sucesso = apply_migrations(create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY))

    if not sucesso:
        print()
        print("Execute os SQLs manualmente no Supabase SQL Editor:")
        for m in MIGRATIONS:
            print(f"  - migrations/broadcasts/{m}")
        sys.exit(1)
