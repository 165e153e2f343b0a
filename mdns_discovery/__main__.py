from mdns_discovery.discovery_handler_main import main

if __name__ == "__main__":
    main()
