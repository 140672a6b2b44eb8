# Gate pass module: scheduled sweeps run by Celery beat
