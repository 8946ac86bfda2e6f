"""Browser microphone to Dialogflow streaming intent bridge."""

__version__ = "0.1.0"
