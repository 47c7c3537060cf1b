"""
Core interfaces for dependency injection
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping


class ConnectionFactory(ABC):
    """SFTP session factory interface"""

    @abstractmethod
    def resolve(self, cfg: Mapping[str, Any]) -> Dict[str, Any]:
        """Complete connection settings from external sources"""
        pass

    @abstractmethod
    def create(self, cfg: Mapping[str, Any]) -> Any:
        """Create and connect a session"""
        pass
