"""
Centralized configuration for ICD Explorer.

Secrets (Azure OpenAI key, UMLS key) are read from the environment.
A local .env file is loaded for development.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

DEFAULT_STORAGE_PATH = os.path.join(os.path.expanduser("~"), ".icd-explorer", "storage.json")


@dataclass(frozen=True)
class AzureOpenAIConfig:
    """Azure OpenAI settings for drug relevance scoring and drug-list generation."""

    endpoint: str = ""
    api_key: str = ""
    deployment_name: str = "gpt-4o-mini"
    api_version: str = "2024-10-21"

    @property
    def is_configured(self) -> bool:
        return bool(self.endpoint and self.api_key)

    @classmethod
    def from_env(cls) -> "AzureOpenAIConfig":
        return cls(
            endpoint=os.getenv("AZURE_OPENAI_ENDPOINT", ""),
            api_key=os.getenv("AZURE_OPENAI_API_KEY", ""),
            deployment_name=os.getenv("AZURE_OPENAI_DEPLOYMENT_NAME", "gpt-4o-mini"),
            api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-10-21"),
        )


@dataclass(frozen=True)
class UMLSConfig:
    """UMLS Terminology Services credentials (SNOMED CT crosswalk)."""

    api_key: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls) -> "UMLSConfig":
        return cls(api_key=os.getenv("UMLS_API_KEY", ""))


@dataclass(frozen=True)
class StorageConfig:
    """Location of the JSON document holding favorites, history, and view mode."""

    path: str = DEFAULT_STORAGE_PATH

    @classmethod
    def from_env(cls) -> "StorageConfig":
        return cls(path=os.getenv("ICD_EXPLORER_STORAGE_PATH", DEFAULT_STORAGE_PATH))


@dataclass
class AppConfig:
    """Top-level configuration bundle."""

    openai: AzureOpenAIConfig
    umls: UMLSConfig
    storage: StorageConfig

    @classmethod
    def load(cls) -> "AppConfig":
        return cls(
            openai=AzureOpenAIConfig.from_env(),
            umls=UMLSConfig.from_env(),
            storage=StorageConfig.from_env(),
        )
