import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from flask import Flask, jsonify
from flask_cors import CORS

from .config import ServerConfig
from .constants import AGENT_CARD_PATH, SERVICES_PATH
from .contracts.ledger_gateway import LedgerGateway
from .core import hook_codec
from .core.models import AgentCard, ServiceConfig, ServiceRecord
from .core.network import get_network_settings
from .core.service_registry import ServiceRegistry

logger = logging.getLogger(__name__)


class X402Server:
    """
    Registers x402 hook services and exposes them for discovery over HTTP.
    """

    def __init__(self, config: ServerConfig, gateway: Optional[LedgerGateway] = None):
        config.validate()
        self.config = config
        self.network_settings = get_network_settings(config.network, config.rpc_url)
        self.gateway = gateway or LedgerGateway(self.network_settings.rpc_url)
        self.registry = ServiceRegistry(self.network_settings, self.gateway)
        self.app = None

        logger.info(
            "x402 server %s on %s (chain %d, rpc %s)",
            config.name, config.network, self.network_settings.chain_id, self.network_settings.rpc_url,
        )

    async def add_service(self, service_config: Union[ServiceConfig, Dict[str, Any]]) -> ServiceRecord:
        """Registers a service; its hook contract is checked on-chain first."""
        if isinstance(service_config, dict):
            service_config = ServiceConfig.from_dict(service_config)
        return await self.registry.register(service_config)

    async def add_services(self, service_configs: Iterable[Union[ServiceConfig, Dict[str, Any]]]) -> List[ServiceRecord]:
        records = []
        for service_config in service_configs:
            records.append(await self.add_service(service_config))
        return records

    async def add_services_from_file(self, path: str) -> List[ServiceRecord]:
        """Registers services from a JSON file holding a list (or {"services": [...]})."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("services", [])
        return await self.add_services(data)

    def get_service(self, service_id: str) -> Optional[ServiceRecord]:
        return self.registry.get(service_id)

    def list_services(self) -> List[ServiceRecord]:
        return self.registry.list()

    def get_agent_card(self) -> AgentCard:
        return AgentCard(
            name=self.config.name,
            description=self.config.description,
            url=self.config.url,
            services=self.list_services(),
        )

    @staticmethod
    def get_service_response(service: ServiceRecord) -> Dict[str, Any]:
        data = service.to_dict()
        data["hookDataSchema"] = hook_codec.get_schema(service.hook_type).to_dict()
        return data

    def register_routes(self, app: Flask) -> Flask:
        @app.route("/", methods=["GET"])
        def health():
            return f"x402 hook server ({self.config.name}) Running"

        @app.route(AGENT_CARD_PATH, methods=["GET"])
        def agent_card():
            return jsonify(self.get_agent_card().to_dict())

        @app.route(SERVICES_PATH, methods=["GET"])
        def list_services():
            return jsonify({"services": [self.get_service_response(s) for s in self.list_services()]})

        @app.route(f"{SERVICES_PATH}/<service_id>", methods=["GET"])
        def get_service(service_id: str):
            service = self.get_service(service_id)
            if not service:
                return jsonify({
                    "error": "Service not found",
                    "message": f"No service found with ID: {service_id}",
                }), 404
            return jsonify(self.get_service_response(service))

        return app

    def create_app(self) -> Flask:
        if self.app is None:
            self.app = Flask(__name__)
            self.app.x402_server = self
            # Discovery documents are public; answer every origin with "*"
            CORS(self.app, origins="*", send_wildcard=True)
            self.register_routes(self.app)
        return self.app

    def run(self, host: str = "0.0.0.0", port: int = 8000, debug: bool = False):
        logger.info("Server starting on %s:%d with %d services", host, port, len(self.registry))
        self.create_app().run(host=host, port=port, debug=debug)


def create_x402_server(config: ServerConfig, gateway: Optional[LedgerGateway] = None) -> X402Server:
    return X402Server(config, gateway)
