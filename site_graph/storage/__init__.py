"""site_graph.storage: Доступ к MongoDB: страницы и рёбра графа ссылок."""

from .gateway import MongoGateway, StoreContext

__all__ = ["MongoGateway", "StoreContext"]
