from mangum import Mangum
from main import app

# Lambda has no ASGI lifespan; tables are created by migrations, not at startup
handler = Mangum(app, lifespan="off")

def lambda_handler(event, context):
    return handler(event, context)
