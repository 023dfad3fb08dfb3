import typer

from render_deploy.commands.deploy import deploy

app = typer.Typer(
    name="render-deploy",
    help="CLI for triggering deploys on render.com",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.command()(deploy)


if __name__ == "__main__":
    app()
