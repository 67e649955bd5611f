from pickletrack_deploy import main

main()
