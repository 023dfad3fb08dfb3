from render_deploy.main import app

app(prog_name="render-deploy")
