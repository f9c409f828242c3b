"""CLI entrypoint: Typer app definition and command registration"""

import typer

from mdterm.cli.commands import detect_cmd, render_cmd, themes_cmd


app = typer.Typer(name="mdterm", no_args_is_help=True, help="Render CommonMark documents on the terminal")

app.command(name="render")(render_cmd)
app.command(name="detect")(detect_cmd)
app.command(name="themes")(themes_cmd)
