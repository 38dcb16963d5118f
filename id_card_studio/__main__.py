from id_card_studio.app import main

main()
