import unittest

from path_setup import ensure_src_path

ensure_src_path()

from formatting import (
    drop_leading_disclaimer,
    format_generic_markdown,
    format_red_team_markdown,
    format_response,
)


class DisclaimerTests(unittest.TestCase):
    def test_leading_disclaimer_block_is_removed(self) -> None:
        text = "**Disclaimer:** For education only.\nUse in labs.\n\n## Overview\nBody"
        self.assertEqual(drop_leading_disclaimer(text), "## Overview\nBody")

    def test_disclaimer_heading_on_second_line_is_removed(self) -> None:
        text = "Sure, here it is.\n## Disclaimer\nStay legal.\n\n## Steps\n- one"
        self.assertEqual(drop_leading_disclaimer(text), "Sure, here it is.\n## Steps\n- one")

    def test_later_disclaimer_is_kept(self) -> None:
        text = "## Overview\nBody\nDisclaimer: keep me"
        self.assertEqual(drop_leading_disclaimer(text), text)


class GenericMarkdownTests(unittest.TestCase):
    def test_bullets_and_heading_spacing_are_normalised(self) -> None:
        text = "Intro\n* first\n* second\n• third\n## Next\nText\n\n\n\nEnd"
        self.assertEqual(
            format_generic_markdown(text),
            "Intro\n- first\n- second\n- third\n\n## Next\nText\n\nEnd",
        )

    def test_inline_star_bullets_become_lines(self) -> None:
        text = "Key points: *  Use labs *  Get permission"
        self.assertEqual(format_generic_markdown(text), "Key points:\n- Use labs\n- Get permission")

    def test_bold_labels_are_not_split(self) -> None:
        text = "- **Learn:**  Packet capture basics"
        self.assertEqual(format_generic_markdown(text), text)

    def test_code_blocks_are_untouched(self) -> None:
        text = "Run:\n```bash\n* not a bullet\n## not a heading\n```"
        self.assertEqual(format_generic_markdown(text), text)


class KindFormattingTests(unittest.TestCase):
    def test_roadmap_lines_are_promoted_and_labelled(self) -> None:
        text = (
            "Phase 1: Foundations\n"
            "Week 1: Networking basics\n"
            "Goal: Learn TCP/IP\n"
            "Concept: Subnetting\n"
            "Deliverable: Lab notes"
        )
        self.assertEqual(
            format_response("roadmap", text),
            "## Phase 1: Foundations\n\n"
            "### Week 1: Networking basics\n\n"
            "### Goal: Learn TCP/IP\n"
            "- **Concept:** Subnetting\n"
            "- **Deliverable:** Lab notes",
        )

    def test_red_team_section_titles_become_headings(self) -> None:
        text = "Authorization and Scope\nScope: Lab only\nDefender Notes:\nWatch logs"
        self.assertEqual(
            format_red_team_markdown(text),
            "## Authorization and Scope\n- **Scope:** Lab only\n\n## Defender Notes\nWatch logs",
        )

    def test_other_kinds_only_get_generic_pass(self) -> None:
        text = "Week 1: stays plain\n* item"
        self.assertEqual(format_response("quiz", text), "Week 1: stays plain\n- item")

    def test_empty_text(self) -> None:
        self.assertEqual(format_response("generic", ""), "")
        self.assertEqual(format_response("generic", None), "")


if __name__ == "__main__":
    unittest.main()
