"""
HTML fixtures and helpers shared by the unit tests.
"""

import httpx

FAQ_PAGE = """
<html>
<head><title>General Questions</title></head>
<body>
    <header><a href="/">Home</a></header>
    <nav><a href="/help">Help</a></nav>
    <main>
        <p>Back to Help Center</p>
        <h1>General Questions</h1>
        <div class="MuiAccordion-root">
            <div class="MuiAccordionSummary-root" aria-expanded="false" aria-controls="panel-1">
                <p>What is AgeGO?</p>
            </div>
            <div id="panel-1" hidden>
                <p>AgeGO is an age verification service.</p>
                <p>It takes a few seconds.</p>
            </div>
        </div>
        <div class="MuiAccordion-root">
            <div class="MuiAccordionSummary-root" aria-expanded="false" aria-controls="panel-2">
                <p>Is my data stored?</p>
            </div>
            <div id="panel-2" hidden>
                <p>No, verification data is deleted.</p>
            </div>
        </div>
    </main>
    <footer>Copyright AgeGO</footer>
</body>
</html>
"""

FAQ_PAGE_TEXT = "\n".join(
    [
        "Back to Help Center",
        "General Questions",
        "",
        "What is AgeGO?",
        "AgeGO is an age verification service. It takes a few seconds.",
        "Is my data stored?",
        "No, verification data is deleted.",
    ]
)

DETAILS_PAGE = """
<html>
<body>
    <main>
        <h1>Verification</h1>
        <details><summary>How does it work?</summary><p>Take a selfie.</p></details>
    </main>
</body>
</html>
"""

PLAIN_PAGE = """
<html>
<body>
    <div class="navbar">Products Pricing</div>
    <h1>About Us</h1>
    <p>We build verification tools.</p>
    <div class="cookie-consent">We use cookies.</div>
</body>
</html>
"""


def accordion_page(sections: list[tuple[str, str]], intro: str = "Help Center") -> str:
    """Build a page of Material-UI style accordions from (question, answer) pairs."""
    blocks = []
    for i, (question, answer) in enumerate(sections):
        blocks.append(
            f"""
            <div class="MuiAccordion-root">
                <div class="MuiAccordionSummary-root" aria-expanded="false"
                     aria-controls="panel-{i}"><p>{question}</p></div>
                <div id="panel-{i}" hidden><p>{answer}</p></div>
            </div>
            """
        )
    return f"<html><body><main><p>{intro}</p>{''.join(blocks)}</main></body></html>"


def make_transport(pages: dict, requested: list | None = None) -> httpx.MockTransport:
    """
    Mock transport serving ``pages`` (url -> html, or an exception to raise).

    Unknown URLs get a 404. Requested URLs are appended to ``requested``.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if requested is not None:
            requested.append(url)
        body = pages.get(url)
        if body is None:
            return httpx.Response(404, text="Not Found")
        if isinstance(body, Exception):
            raise body
        if isinstance(body, int):
            return httpx.Response(body, text="error")
        return httpx.Response(200, text=body, headers={"content-type": "text/html"})

    return httpx.MockTransport(handler)
