from league import create_app, db
from league.models import Game, Pick, PointAdjustment, Profile, Result

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "Profile": Profile,
        "Game": Game,
        "Pick": Pick,
        "Result": Result,
        "PointAdjustment": PointAdjustment,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=app.config.get("DEBUG", False))
