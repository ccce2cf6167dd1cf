"""
Asesor de IA (endpoint compatible con chat-completions de OpenAI).

Solo lee datos ya calculados; nunca toca stock. Cualquier fallo se
convierte en UpstreamServiceError y las rutas responden "no disponible".
"""
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from services.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "gpt-4o-mini"

FORECAST_SYSTEM = (
    "Eres un analista experto en inventarios especializado en pronóstico de demanda."
)
REORDER_SYSTEM = (
    "Eres un analista experto en inventarios especializado en reposición."
)
CHAT_SYSTEM = (
    "Eres el asistente de inventario. Responde solo preguntas sobre stock, productos, "
    "recepciones, entregas, transferencias, ajustes y operación de bodegas. "
    "Si la pregunta no es de inventario, indícalo amablemente."
)


class InventoryAdvisor:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 20.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._api_key = api_key or ""
        self._base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._model = model or DEFAULT_MODEL
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config, transport=None) -> "InventoryAdvisor":
        return cls(
            api_key=config.get("AI_API_KEY"),
            base_url=config.get("AI_BASE_URL"),
            model=config.get("AI_MODEL"),
            timeout=float(config.get("AI_TIMEOUT_SECONDS") or 20),
            transport=transport or config.get("AI_TRANSPORT"),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _complete(self, system: str, prompt: str, *, json_mode: bool, temperature: float = 0.3) -> str:
        if not self.is_configured:
            raise UpstreamServiceError("El asistente de IA no está configurado.")

        body: Dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                resp = client.post(f"{self._base_url}/chat/completions", json=body, headers=self._headers())
                resp.raise_for_status()
                data = resp.json()
            return data["choices"][0]["message"]["content"]
        except httpx.HTTPStatusError as e:
            logger.warning("IA respondió %s", e.response.status_code)
            raise UpstreamServiceError(f"El servicio de IA respondió {e.response.status_code}.")
        except httpx.HTTPError as e:
            logger.warning("Error de red con IA: %s", e)
            raise UpstreamServiceError("No se pudo contactar al servicio de IA.")
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning("Respuesta de IA inválida: %s", e)
            raise UpstreamServiceError("Respuesta inválida del servicio de IA.")

    def _complete_json(self, system: str, prompt: str) -> Dict[str, Any]:
        content = self._complete(system, prompt, json_mode=True)
        try:
            return json.loads(content)
        except (TypeError, ValueError):
            raise UpstreamServiceError("La IA no devolvió JSON válido.")

    def forecast_demand(self, product: Dict[str, Any], history: List[Dict[str, Any]]) -> Dict[str, Any]:
        prompt = (
            f"Producto: {product['name']} (SKU {product['sku']})\n"
            f"Stock actual: {product['currentStock']}\n"
            f"Punto de reorden: {product['reorderPoint']}\n"
            f"Lead time: {product['leadTime']} días\n\n"
            f"Salidas de los últimos 30 días:\n{json.dumps(history, indent=2)}\n\n"
            "Responde en JSON con: predictions {next7Days, next14Days, next30Days}, "
            "recommendations {reorderQuantity, optimalReorderPoint, urgency}, "
            "insights {trend, seasonality, stockoutRisk, confidence}, explanation."
        )
        return self._complete_json(FORECAST_SYSTEM, prompt)

    def reorder_suggestions(self, products: List[Dict[str, Any]]) -> Dict[str, Any]:
        prompt = (
            f"Productos bajo el punto de reorden:\n{json.dumps(products, indent=2)}\n\n"
            "Responde en JSON con: suggestions [{sku, name, priority, recommendedQuantity, "
            "expectedStockoutDate, reason, currentStock, daysUntilStockout}], "
            "summary {totalProductsNeedingReorder, criticalCount}."
        )
        return self._complete_json(REORDER_SYSTEM, prompt)

    def chat(self, question: str, snapshot: Dict[str, Any]) -> str:
        prompt = (
            f"Contexto actual del inventario:\n{json.dumps(snapshot, indent=2)}\n\n"
            f"Pregunta: {question}"
        )
        return self._complete(CHAT_SYSTEM, prompt, json_mode=False, temperature=0.7)
