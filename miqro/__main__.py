from miqro.main import main

main()
