from flask_wtf import FlaskForm
from wtforms import IntegerField, StringField, SubmitField
from wtforms.validators import InputRequired, Length, NumberRange

from ..services.pipeline import MAX_CHAPTERS, MIN_CHAPTERS


class BookRequestForm(FlaskForm):
    keywords = StringField(
        "Keywords (comma separated)",
        validators=[InputRequired(), Length(max=500)],
    )
    chapters = IntegerField(
        "Chapters",
        default=5,
        validators=[InputRequired(), NumberRange(min=MIN_CHAPTERS, max=MAX_CHAPTERS)],
        description=f"Between {MIN_CHAPTERS} and {MAX_CHAPTERS} chapters",
    )
    submit = SubmitField("Generate book")
