import os
import sys

import uvicorn

from assetgate.core.config import settings

APP_URI = "assetgate.main:app"


def main():
    if settings.debug:
        os.environ["PYTHONASYNCIODEBUG"] = "1"
        uvicorn.run(
            app=APP_URI,
            host=settings.backend_host,
            port=settings.backend_port,
            reload=settings.reload_uvicorn,
            workers=settings.workers_count,
            loop="uvloop",
        )
    elif sys.platform.startswith("linux"):
        from assetgate.web import GunicornApplication, gunicorn_options

        GunicornApplication(APP_URI, gunicorn_options()).run()
    else:
        uvicorn.run(
            app=APP_URI,
            host=settings.backend_host,
            port=settings.backend_port,
            workers=settings.workers_count,
        )


if __name__ == "__main__":
    main()
