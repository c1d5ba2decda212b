import unittest

from path_setup import ensure_src_path

ensure_src_path()

from backends.openai import ProviderPoolConfig
from chunking import PackOptions, SectionLayout
from delivery import DeliveryConfig, TextProducer, Transport
from generation_types import ContentTypeProfile, QualityReport, RefinementConfig, RefinementResult, TokenHints
from model import CompletionCell, LLMModel, LLMRequest, LLMTask
from quality.gate import KindLookup
from registry import ContentKindSpec

from core import config as core_config
from core import protocols as core_protocols
from core import types as core_types


class CoreApiTests(unittest.TestCase):
    def test_protocols_reexport_contracts(self) -> None:
        self.assertIs(core_protocols.LLMModel, LLMModel)
        self.assertIs(core_protocols.CompletionCell, CompletionCell)
        self.assertIs(core_protocols.KindLookup, KindLookup)
        self.assertIs(core_protocols.Transport, Transport)
        self.assertIs(core_protocols.TextProducer, TextProducer)

    def test_types_reexport_domain_types(self) -> None:
        self.assertIs(core_types.LLMTask, LLMTask)
        self.assertIs(core_types.LLMRequest, LLMRequest)
        self.assertIs(core_types.ContentTypeProfile, ContentTypeProfile)
        self.assertIs(core_types.TokenHints, TokenHints)
        self.assertIs(core_types.QualityReport, QualityReport)
        self.assertIs(core_types.RefinementResult, RefinementResult)
        self.assertIs(core_types.ContentKindSpec, ContentKindSpec)
        self.assertIs(core_types.SectionLayout, SectionLayout)

    def test_config_reexport_domain_configs(self) -> None:
        self.assertIs(core_config.ProviderPoolConfig, ProviderPoolConfig)
        self.assertIs(core_config.RefinementConfig, RefinementConfig)
        self.assertIs(core_config.PackOptions, PackOptions)
        self.assertIs(core_config.DeliveryConfig, DeliveryConfig)

    def test_core_init_exposes_expected_modules(self) -> None:
        from core import __all__ as core_all

        self.assertEqual(core_all, ["protocols", "types", "config"])


if __name__ == "__main__":
    unittest.main()
