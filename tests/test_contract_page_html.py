from __future__ import annotations

import unittest
from pathlib import Path

from modsplice.page import Page, ReadyState, ScriptElement, bundle_is_live


REPO_ROOT = Path(__file__).resolve().parent.parent
FIXTURES = REPO_ROOT / "tests" / "fixtures"


class TestPageHtmlContract(unittest.TestCase):
    def test_feed_then_render_is_identity_for_plain_scripts(self) -> None:
        html = '<p>a</p><script src="/a.js"></script><script>var x = "<b>";</script>tail'
        page = Page("https://example.test")
        page.feed(html)
        self.assertEqual(page.render(), html)
        self.assertEqual(len(page.scripts()), 2)
        self.assertEqual(page.scripts()[1].text, 'var x = "<b>";')

    def test_fixture_page_scripts(self) -> None:
        page = Page("https://pxls.space")
        page.feed((FIXTURES / "page.html").read_text(encoding="utf-8"))
        urls = [page.script_url(s) for s in page.scripts()]
        self.assertEqual(urls, ["https://pxls.space/vendor/jquery.js", "https://pxls.space/pxls.js"])
        self.assertTrue(bundle_is_live(page, "https://pxls.space/pxls.js"))

    def test_attribute_parsing(self) -> None:
        page = Page("https://example.test")
        page.feed("<script async type='module' src=/m.js></script>")
        el = page.scripts()[0]
        self.assertEqual(el.attrs, {"async": None, "type": "module", "src": "/m.js"})
        self.assertTrue(el.is_executable())
        self.assertEqual(el.render(), '<script async type="module" src="/m.js"></script>')

    def test_blocked_type_is_not_executable(self) -> None:
        el = ScriptElement(attrs={"src": "/pxls.js"})
        el.type = "none/blocked"
        self.assertFalse(el.is_executable())
        el.type = None
        self.assertTrue(el.is_executable())
        self.assertFalse(ScriptElement(attrs={"type": "application/json"}).is_executable())

    def test_inline_script_close_tag_is_escaped(self) -> None:
        el = ScriptElement(text='document.write("</script>")')
        self.assertEqual(el.render(), '<script>document.write("<\\/script>")</script>')

    def test_observers_and_insert_after(self) -> None:
        page = Page("https://example.test")
        seen = []
        obs = page.observe(lambda added: seen.extend(added))
        a = ScriptElement(attrs={"src": "/a.js"})
        page.append(a)
        b = ScriptElement(text="b")
        page.insert_after(a, b)
        self.assertEqual(page.nodes, [a, b])
        self.assertEqual(seen, [a, b])

        obs.disconnect()
        obs.disconnect()
        page.append("x")
        self.assertEqual(len(seen), 2)

        with self.assertRaises(ValueError):
            page.insert_after(ScriptElement(), "y")

    def test_load_lifecycle(self) -> None:
        page = Page("https://example.test")
        fired = []
        page.on_load(lambda: fired.append(page.ready_state))
        page.finish_loading()
        self.assertEqual(fired, [ReadyState.COMPLETE])
        with self.assertRaises(RuntimeError):
            page.finish_loading()


if __name__ == "__main__":
    unittest.main(verbosity=2)
