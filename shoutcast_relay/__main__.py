from shoutcast_relay.app import main

main()
