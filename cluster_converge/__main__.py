"""Run the cluster-converge command line tool."""

from cluster_converge.tool.cluster_converge import main

if __name__ == "__main__":
    main()
