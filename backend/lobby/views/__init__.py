from lobby.views.handlers import get_game as get_game
from lobby.views.handlers import list_games as list_games
from lobby.views.handlers import new_game as new_game
from lobby.views.handlers import new_user as new_user
from lobby.views.handlers import root as root
