from engine_scaffold.pipeline import main

main()
