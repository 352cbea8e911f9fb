from player_api.cli import main

main()
