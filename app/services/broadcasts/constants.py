"""
Constantes do motor de broadcasts.
"""

# Tabelas
TABLE_BROADCASTS = "broadcasts"
TABLE_RECIPIENTS = "broadcast_recipients"
TABLE_USERS = "users"

# Coluna com o endereco de canal do usuario (chat_id do Telegram)
COLUNA_ENDERECO = "telegram_id"

# RPC que resume atividade por usuario com endereco de canal
RPC_PERFIS_ATIVIDADE = "broadcast_activity_profiles"

# Janelas dos segmentos (dias)
JANELA_RECENTE_DIAS = 30
JANELA_INATIVO_DIAS = 60

# Minimo de eventos em JANELA_RECENTE_DIAS para power_users
LIMIAR_POWER_USERS = 50

# Motivo gravado quando o usuario nao tem endereco de canal
MOTIVO_SEM_ENDERECO = "no channel address"

# Paginacao do PostgREST (max-rows padrao do Supabase)
TAMANHO_PAGINA_DB = 1000

# Tamanho dos lotes de `in_()` na busca de enderecos
LOTE_IN_FILTER = 500

# Chave Redis da flag de cancelamento
CHAVE_CANCELAMENTO = "broadcast:cancel:{campaign_id}"

# Chave Redis do lease de dispatch (um pool por campanha)
CHAVE_LEASE_DISPATCH = "broadcast:dispatch:{campaign_id}"
