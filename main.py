from remote_ingest.server import main

if __name__ == "__main__":
    main()
