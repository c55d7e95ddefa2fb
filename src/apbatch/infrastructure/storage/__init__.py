"""Template storage and config materialization."""

from apbatch.infrastructure.storage.template_store import YamlTemplateStore
from apbatch.infrastructure.storage.materializer import TemplateMaterializer, split_template_name

__all__ = ["YamlTemplateStore", "TemplateMaterializer", "split_template_name"]
