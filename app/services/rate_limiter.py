"""
Rate limiter para controle de vazao de envio.

Token bucket no Redis: o limite do provedor e por bot, e varios
processos (console, cron de agendadas, host do bridge, workers do
uvicorn) enviam pelo mesmo bot. O estado do balde fica numa hash
(`tokens`, `ts`) e a reposicao + consumo roda num script Lua, atomico
no servidor e com o relogio do proprio Redis.
"""
import asyncio
import logging

from app.core.config import settings
from app.core.exceptions import ExternalAPIError
from app.services.redis import redis_client

logger = logging.getLogger(__name__)

# Repoe tokens pelo tempo decorrido e consome 1 se houver.
# Retorna a espera em segundos (string: Lua truncaria o float) ate haver token.
LUA_CONSUMIR = """
local taxa = tonumber(ARGV[1])
local capacidade = tonumber(ARGV[2])
local t = redis.call("time")
local agora = tonumber(t[1]) + tonumber(t[2]) / 1000000
local estado = redis.call("hmget", KEYS[1], "tokens", "ts")
local tokens = tonumber(estado[1]) or capacidade
local ts = tonumber(estado[2]) or agora
tokens = math.min(capacidade, tokens + math.max(0, agora - ts) * taxa)
local espera = 0
if tokens >= 1 then
    tokens = tokens - 1
else
    espera = (1 - tokens) / taxa
end
redis.call("hset", KEYS[1], "tokens", tostring(tokens), "ts", tostring(agora))
redis.call("expire", KEYS[1], math.ceil(capacidade / taxa) + 60)
return tostring(espera)
"""

# Mesma reposicao, sem consumir nem gravar
LUA_STATUS = """
local taxa = tonumber(ARGV[1])
local capacidade = tonumber(ARGV[2])
local t = redis.call("time")
local agora = tonumber(t[1]) + tonumber(t[2]) / 1000000
local estado = redis.call("hmget", KEYS[1], "tokens", "ts")
local tokens = tonumber(estado[1]) or capacidade
local ts = tonumber(estado[2]) or agora
return tostring(math.min(capacidade, tokens + math.max(0, agora - ts) * taxa))
"""


class TokenBucket:
    """
    Token bucket distribuido.

    Attributes:
        taxa_por_segundo: Tokens repostos por segundo
        capacidade: Maximo de tokens acumulados (rajada)
        chave: Chave Redis do balde (uma por bot)
    """

    def __init__(self, taxa_por_segundo: float, capacidade: int, chave: str):
        if taxa_por_segundo <= 0:
            raise ValueError("taxa_por_segundo deve ser positiva")
        if capacidade < 1:
            raise ValueError("capacidade deve ser >= 1")

        self.taxa_por_segundo = taxa_por_segundo
        self.capacidade = capacidade
        self.chave = chave

    async def _consumir(self) -> float:
        try:
            espera = await redis_client.eval(
                LUA_CONSUMIR, 1, self.chave, self.taxa_por_segundo, self.capacidade
            )
        except Exception as e:
            logger.error(f"[RateLimit] Erro ao consumir token de {self.chave}: {e}")
            raise ExternalAPIError(
                "Rate limiter indisponivel",
                service="redis",
                details={"chave": self.chave},
                original_error=e,
            ) from e
        return float(espera)

    async def acquire(self) -> None:
        """
        Aguarda ate haver um token disponivel e o consome.

        Raises:
            ExternalAPIError: Redis indisponivel (nao ha como respeitar o limite)
        """
        while True:
            espera = await self._consumir()
            if espera <= 0:
                return
            await asyncio.sleep(espera)

    async def status(self) -> dict:
        """Retorna status atual do balde (sem consumir)."""
        dados = {
            "chave": self.chave,
            "taxa_por_segundo": self.taxa_por_segundo,
            "capacidade": self.capacidade,
        }
        try:
            tokens = await redis_client.eval(
                LUA_STATUS, 1, self.chave, self.taxa_por_segundo, self.capacidade
            )
            dados["tokens_disponiveis"] = round(float(tokens), 2)
        except Exception as e:
            logger.warning(f"[RateLimit] Erro ao ler balde {self.chave}: {e}")
            dados["tokens_disponiveis"] = None
        return dados


def criar_limiter_envio() -> TokenBucket:
    """Cria balde com os limites publicados do provedor."""
    return TokenBucket(
        taxa_por_segundo=settings.BROADCAST_RATE_PER_SECOND,
        capacidade=settings.BROADCAST_RATE_BURST,
        chave=settings.BROADCAST_RATE_LIMIT_KEY,
    )


# O limite do provedor e por bot, nao por campanha
limiter_envio = criar_limiter_envio()
