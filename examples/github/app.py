"""GitHub branches — server-rendered, streamed, and hydrated.

``/github`` fetches the branch list of a repository from the GitHub API
before rendering, streams the document (head first, then the list, then
the hydration data and scripts), and embeds the fetched branches as
``window.__INITIAL_DATA__`` for the client bundle. Every other path is
rendered synchronously by the catch-all page.

Expects a client build (``manifest.json`` plus bundles) in
``PERCH_BUILD_DIR`` (default ``build/app``).

Run:
    PERCH_BUILD_DIR=path/to/build python app.py
"""

from pathlib import Path

import httpx

from perch import App, AppConfig, Request
from perch.enrichment import GITHUB_API, github_branches
from perch.render.kida_engine import KidaRenderEngine
from perch.server.state import RenderState

TEMPLATES = Path(__file__).parent / "templates"
REPO = "jasonboy/wechat-jssdk"


def create_app(
    config: AppConfig | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    api_base: str = GITHUB_API,
) -> App:
    config = config or AppConfig.from_env()

    def engine(state: RenderState) -> KidaRenderEngine:
        assert state.manifest is not None
        return KidaRenderEngine.from_directory(
            TEMPLATES,
            state.manifest,
            pages={"/github": "github.html"},
            titles={"/github": f"{REPO} branches"},
            public_path=config.public_path,
        )

    app = App(config, engine=engine)

    @app.page("/github")
    async def github(request: Request) -> dict[str, object]:
        return {"github": await github_branches(REPO, client=client, base_url=api_base)}

    @app.error(502)
    def upstream_down(request: Request) -> str:
        return "<h1>GitHub is unavailable</h1><p>Try again in a minute.</p>"

    return app


app = create_app()


if __name__ == "__main__":
    app.run()
